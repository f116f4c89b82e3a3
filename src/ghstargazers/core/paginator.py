import logging
from math import ceil

from ghstargazers.api import (
    Aborted,
    CancellationToken,
    ConsecutiveErrorsExceeded,
    GithubClient,
    RateLimited,
    RepositoryNotFound,
    StargazerError,
)
from ghstargazers.config import Settings
from ghstargazers.models import RawStargazer
from .backoff import backoff_delay
from .emitter import RunAggregator

logger = logging.getLogger(__name__)


class StargazerPaginator:
    """Walks the stargazers listing one page at a time until ``cap`` is met."""

    def __init__(
        self,
        client: GithubClient,
        aggregator: RunAggregator,
        cancel: CancellationToken,
        settings: Settings,
    ):
        self._client = client
        self._aggregator = aggregator
        self._cancel = cancel
        self._settings = settings

    async def collect(self, owner: str, repo: str, cap: int) -> list[RawStargazer]:
        s = self._settings
        collected: list[RawStargazer] = []
        seen: set[str] = set()
        page = 1
        consecutive_errors = 0

        while len(collected) < cap:
            self._cancel.raise_if_cancelled()
            try:
                batch = await self._client.stargazers_page(owner, repo, page)
            except RateLimited as exc:
                wait = exc.wait_seconds
                logger.warning(f"Rate limit hit on page {page}; waiting {wait:.0f}s")
                self._aggregator.collection_progress(
                    f"Rate limit reached. Waiting {ceil(wait)} seconds...",
                    cap=cap,
                    fetched=len(collected),
                )
                await self._cancel.sleep(wait + s.rate_limit_margin)
                continue
            except (Aborted, RepositoryNotFound):
                raise
            except StargazerError as exc:
                consecutive_errors += 1
                limit = s.max_consecutive_page_errors
                logger.warning(
                    f"Error fetching page {page} of {owner}/{repo}: {exc} ({consecutive_errors}/{limit})"
                )
                self._aggregator.collection_progress(
                    f"Error fetching page {page}: {exc}. Retrying... ({consecutive_errors}/{limit})",
                    cap=cap,
                    fetched=len(collected),
                )
                if consecutive_errors >= limit:
                    raise ConsecutiveErrorsExceeded(limit) from exc
                await self._cancel.sleep(
                    backoff_delay(
                        consecutive_errors,
                        base=s.page_backoff_base,
                        cap=s.page_backoff_max,
                    )
                )
                continue

            if not batch:
                logger.info(f"No more stargazers for {owner}/{repo} after page {page - 1}")
                break

            consecutive_errors = 0
            # Pages shift when new stars arrive mid-crawl; keep logins unique.
            fresh = [g for g in batch if g.login not in seen]
            fresh = fresh[: cap - len(collected)]
            seen.update(g.login for g in fresh)
            collected.extend(fresh)
            self._aggregator.collection_progress(
                f"Fetched {len(collected)} stargazers (page {page})...",
                cap=cap,
                fetched=len(collected),
            )
            page += 1

            if len(collected) >= cap:
                break
            await self._cancel.sleep(s.page_delay)

        return collected
