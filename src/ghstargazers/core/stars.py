import logging

from ghstargazers.api import Aborted, CancellationToken, GithubClient
from ghstargazers.config import Settings

logger = logging.getLogger(__name__)


class StarCounter:
    """Sums ``stargazers_count`` over a user's most recently updated repos."""

    def __init__(self, client: GithubClient, cancel: CancellationToken, settings: Settings):
        self._client = client
        self._cancel = cancel
        self._settings = settings

    async def total_stars(self, login: str) -> int:
        """Never fails: errors end the count early with whatever was summed.

        Only cancellation (``Aborted``) propagates.
        """
        s = self._settings
        total = 0
        page = 1
        consecutive_errors = 0

        while page <= s.repo_pages and consecutive_errors < s.max_star_errors:
            try:
                repos = await self._client.user_repos_page(login, page)
            except Aborted:
                raise
            except Exception as exc:
                consecutive_errors += 1
                logger.debug(f"Repos page {page} for {login} failed: {exc!r}")
                if consecutive_errors >= s.max_star_errors:
                    break
                await self._cancel.sleep(s.star_retry_delay)
                continue

            if not repos:
                break
            total += sum(r.stargazers_count or 0 for r in repos)
            consecutive_errors = 0
            page += 1

        return total
