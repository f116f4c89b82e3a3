from .cancellation import CancellationToken
from .errors import (
    Aborted,
    BatchFailure,
    ConsecutiveErrorsExceeded,
    GithubApiError,
    MalformedResponse,
    MaxRetriesExceeded,
    RateLimited,
    RepositoryNotFound,
    StargazerError,
    TransportError,
)
from .github_client import GithubClient
from .transport import ApiResponse, Transport, transport_factory

__all__ = [
    "Aborted",
    "ApiResponse",
    "BatchFailure",
    "CancellationToken",
    "ConsecutiveErrorsExceeded",
    "GithubApiError",
    "GithubClient",
    "MalformedResponse",
    "MaxRetriesExceeded",
    "RateLimited",
    "RepositoryNotFound",
    "StargazerError",
    "Transport",
    "TransportError",
    "transport_factory",
]
