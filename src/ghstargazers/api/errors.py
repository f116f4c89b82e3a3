"""Exception hierarchy shared by the transport, the client and the engine."""


class StargazerError(Exception):
    """Base class for every failure raised while collecting stargazers."""


class Aborted(StargazerError):
    """The run's cancellation token was triggered.

    This is a user-initiated stop, not a failure. Handlers that catch
    ``StargazerError`` must let it through.
    """

    def __init__(self, message: str = "Request aborted"):
        super().__init__(message)


class TransportError(StargazerError):
    """A request could not be completed at the HTTP level."""


class MaxRetriesExceeded(TransportError):
    def __init__(self, url: str, attempts: int, last_error: BaseException | None = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error!r}" if last_error is not None else ""
        super().__init__(f"Max retries exceeded ({attempts}) for {url}{detail}")


class GithubApiError(StargazerError):
    """GitHub answered with a status the caller does not handle."""

    def __init__(self, status: int, reason: str = "", *, resource: str = "GitHub API"):
        self.status = status
        self.reason = reason
        super().__init__(f"{resource} error: {status} - {reason}".rstrip(" -"))


class MalformedResponse(StargazerError):
    """A 2xx payload did not have the expected shape."""


class RateLimited(StargazerError):
    """Primary rate limit exhausted; requests may resume after ``wait_seconds``."""

    def __init__(self, wait_seconds: float):
        self.wait_seconds = wait_seconds
        super().__init__(
            f"GitHub rate limit reached. Resets in {wait_seconds:.0f} seconds."
        )


class RepositoryNotFound(StargazerError):
    def __init__(self, owner: str, repo: str):
        self.owner = owner
        self.repo = repo
        super().__init__("Repository not found")


class ConsecutiveErrorsExceeded(StargazerError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Failed to fetch stargazers after {limit} consecutive errors"
        )


class BatchFailure(StargazerError):
    """A whole enrichment batch raised instead of settling item by item."""

    def __init__(self, first: int, last: int, cause: BaseException):
        self.first = first
        self.last = last
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")
