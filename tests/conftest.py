import inspect
import re

import pytest

from ghstargazers.api import ApiResponse, CancellationToken
from ghstargazers.config import Settings

API_URL = "https://api.github.test"


def ok(payload, **headers) -> ApiResponse:
    return ApiResponse(status=200, reason="OK", headers=headers, payload=payload)


def status(code: int, reason: str = "", **headers) -> ApiResponse:
    return ApiResponse(status=code, reason=reason, headers=headers, payload=None)


def profile(login: str, **extra) -> dict:
    data = {
        "login": login,
        "name": None,
        "avatar_url": f"https://avatars.test/{login}",
        "html_url": f"https://github.test/{login}",
        "followers": 3,
        "following": 1,
        "public_repos": 2,
        "created_at": "2020-01-01T00:00:00Z",
    }
    data.update(extra)
    return data


def stargazer_page(logins) -> list[dict]:
    return [
        {"starred_at": "2024-05-01T12:00:00Z", "user": {"login": login}}
        for login in logins
    ]


class FakeGitHub:
    """Scripted in-memory GitHub used in place of ``Transport``.

    Routes are regexes over the URL path; handlers get the match and the
    query params and return an ``ApiResponse`` or an exception to raise.
    Unrouted paths answer 404.
    """

    def __init__(self):
        self._routes = []
        self.calls: list[tuple[str, dict]] = []
        self.cancel: CancellationToken | None = None

    def route(self, pattern: str, handler, *, first: bool = False):
        """Register a handler; ``first`` puts it ahead of earlier routes."""
        entry = (re.compile(pattern), handler)
        if first:
            self._routes.insert(0, entry)
        else:
            self._routes.append(entry)
        return self

    def script(self, pattern: str, *responses, first: bool = False):
        """Answer ``pattern`` with ``responses`` in order, repeating the last one."""
        remaining = list(responses)

        def handler(match, params):
            return remaining.pop(0) if len(remaining) > 1 else remaining[0]

        return self.route(pattern, handler, first=first)

    def stargazers(self, owner: str, repo: str, pages: list[list[str]]):
        def handler(match, params):
            index = params["page"] - 1
            return ok(stargazer_page(pages[index]) if index < len(pages) else [])

        return self.route(rf"/repos/{owner}/{repo}/stargazers", handler)

    def users(self, stars: dict[str, list[int]] | None = None):
        """Every login gets a profile; repos report ``stars[login]`` on page 1."""
        stars = stars or {}

        def profile_handler(match, params):
            return ok(profile(match["login"]))

        def repos_handler(match, params):
            counts = stars.get(match["login"], [])
            if params["page"] > 1:
                return ok([])
            return ok([{"stargazers_count": c} for c in counts])

        self.route(r"/users/(?P<login>[^/]+)", profile_handler)
        self.route(r"/users/(?P<login>[^/]+)/repos", repos_handler)
        return self

    def calls_to(self, pattern: str) -> list[dict]:
        regex = re.compile(pattern)
        return [params for path, params in self.calls if regex.fullmatch(path)]

    # --- transport protocol ---

    def __call__(self, token: str, cancel: CancellationToken) -> "FakeGitHub":
        self.cancel = cancel
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def get(self, url, *, params=None, timeout=None, max_attempts=None):
        if self.cancel is not None:
            return await self.cancel.guard(self._dispatch(url, params))
        return await self._dispatch(url, params)

    async def _dispatch(self, url, params):
        path = url.removeprefix(API_URL)
        params = dict(params or {})
        self.calls.append((path, params))
        for regex, handler in self._routes:
            match = regex.fullmatch(path)
            if match is None:
                continue
            result = handler(match, params)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, BaseException):
                raise result
            return result
        return status(404, "Not Found")


@pytest.fixture
def settings() -> Settings:
    """Production limits with every delay shrunk to zero."""
    return Settings(
        _env_file=None,
        github_token=None,
        github_api_url=API_URL,
        transport_backoff_base=0,
        page_backoff_base=0,
        page_delay=0,
        rate_limit_margin=0,
        batch_backoff_base=0,
        batch_delay=0,
        item_backoff_base=0,
        star_retry_delay=0,
    )


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()
