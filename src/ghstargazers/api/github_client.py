import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ghstargazers.config import Settings, get_settings
from ghstargazers.models import RawStargazer, RepoSummary, UserProfile
from .errors import GithubApiError, MalformedResponse, RateLimited, RepositoryNotFound
from .rate_limiting import is_rate_limited, seconds_until_reset
from .transport import ApiResponse, Transport

logger = logging.getLogger(__name__)

_REPOS = TypeAdapter(list[RepoSummary])


class GithubClient:
    """The three REST endpoints the engine needs, on top of a ``Transport``."""

    def __init__(self, transport: Transport, settings: Settings | None = None):
        self._transport = transport
        self._settings = settings or get_settings()

    async def stargazers_page(self, owner: str, repo: str, page: int) -> list[RawStargazer]:
        """One page of stargazers (1-based). Empty once the listing is exhausted."""
        s = self._settings
        resp = await self._transport.get(
            f"{s.api_url}/repos/{owner}/{repo}/stargazers",
            params={"page": page, "per_page": s.stargazers_per_page},
            timeout=s.stargazers_timeout,
            max_attempts=s.stargazers_attempts,
        )
        if resp.status == 404:
            raise RepositoryNotFound(owner, repo)
        if is_rate_limited(resp.status, resp.headers):
            raise RateLimited(seconds_until_reset(resp.headers))
        _raise_for_status(resp)
        if not resp.payload:
            return []
        if not isinstance(resp.payload, list):
            raise MalformedResponse(
                f"Unexpected stargazers payload: {type(resp.payload).__name__}"
            )
        stargazers = []
        for item in resp.payload:
            # Deleted accounts come back as {"user": null}; drop just that entry.
            try:
                stargazers.append(RawStargazer.from_api(item))
            except (ValidationError, KeyError, TypeError) as exc:
                logger.warning(f"Skipping stargazer entry on page {page} of {owner}/{repo}: {exc}")
        return stargazers

    async def user_profile(self, login: str) -> UserProfile | None:
        """Profile for ``login``, or None when GitHub reports no such user."""
        s = self._settings
        resp = await self._transport.get(
            f"{s.api_url}/users/{login}",
            timeout=s.profile_timeout,
            max_attempts=s.profile_attempts,
        )
        if resp.status == 404:
            return None
        _raise_for_status(resp, resource="User API")
        try:
            return UserProfile.model_validate(resp.payload)
        except ValidationError as exc:
            raise MalformedResponse(f"Unexpected profile for {login}: {exc}") from exc

    async def user_repos_page(self, login: str, page: int) -> list[RepoSummary] | None:
        """Owned repositories, most recently updated first. None on 404."""
        s = self._settings
        resp = await self._transport.get(
            f"{s.api_url}/users/{login}/repos",
            params={"page": page, "per_page": s.repos_per_page, "sort": "updated"},
            timeout=s.repos_timeout,
            max_attempts=s.repos_attempts,
        )
        if resp.status == 404:
            return None
        _raise_for_status(resp, resource="Repos API")
        return _parse_repos(resp.payload, login)


def _raise_for_status(resp: ApiResponse, *, resource: str = "GitHub API") -> None:
    if not resp.ok:
        raise GithubApiError(resp.status, resp.reason, resource=resource)


def _parse_repos(payload: Any, login: str) -> list[RepoSummary]:
    if not payload:
        return []
    try:
        return _REPOS.validate_python(payload)
    except ValidationError as exc:
        raise MalformedResponse(f"Unexpected repositories for {login}: {exc}") from exc
