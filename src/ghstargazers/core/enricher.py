import asyncio
import logging
from collections.abc import Sequence

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ghstargazers.api import (
    Aborted,
    BatchFailure,
    CancellationToken,
    GithubClient,
    StargazerError,
)
from ghstargazers.api.transport import log_retry
from ghstargazers.config import Settings
from ghstargazers.models import (
    Absent,
    EnrichedUser,
    Failed,
    ItemOutcome,
    Present,
    RawStargazer,
)
from .backoff import backoff_delay
from .emitter import RunAggregator
from .stars import StarCounter

logger = logging.getLogger(__name__)


class StargazerEnricher:
    """Turns raw stargazers into ``EnrichedUser`` records, one batch at a time.

    Batches run strictly in order; the items of a batch run concurrently and
    all of them settle before the next batch starts. A batch that keeps
    raising is skipped, but its items still count as processed.
    """

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
        self._stars = StarCounter(client, cancel, settings)

    async def enrich(self, stargazers: Sequence[RawStargazer]) -> list[EnrichedUser]:
        size = self._settings.batch_size
        results: list[EnrichedUser] = []

        for start in range(0, len(stargazers), size):
            batch = stargazers[start : start + size]
            users = await self._process_batch(batch, start)
            if users is None:
                self._aggregator.batch_done(
                    len(batch),
                    [],
                    message=(
                        f"Skipping batch {start + 1}-{start + len(batch)} after "
                        f"{self._settings.max_batch_attempts} failed attempts"
                    ),
                )
            else:
                results.extend(users)
                self._aggregator.batch_done(len(batch), users)

            if start + size < len(stargazers):
                await self._cancel.sleep(self._settings.batch_delay)

        return results

    async def _process_batch(
        self, batch: Sequence[RawStargazer], start: int
    ) -> list[EnrichedUser] | None:
        """Users the batch yielded, or None once every attempt has failed."""
        s = self._settings
        for attempt in range(1, s.max_batch_attempts + 1):
            try:
                outcomes = await self._run_batch(batch, start)
            except BatchFailure as exc:
                logger.warning(
                    f"Batch {exc.first}-{exc.last} failed on attempt {attempt}: {exc}"
                )
                self._aggregator.enrichment_notice(
                    f"Error processing batch {exc.first}-{exc.last}: {exc}. "
                    f"Retrying... ({attempt}/{s.max_batch_attempts})"
                )
                if attempt >= s.max_batch_attempts:
                    return None
                await self._cancel.sleep(
                    backoff_delay(attempt, base=s.batch_backoff_base, cap=s.batch_backoff_max)
                )
                continue
            return [o.user for o in outcomes if isinstance(o, Present)]
        return None

    async def _run_batch(self, batch: Sequence[RawStargazer], start: int) -> list[ItemOutcome]:
        results = await asyncio.gather(
            *(self._enrich_item(stargazer) for stargazer in batch),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Aborted):
                raise result
        for result in results:
            if isinstance(result, BaseException):
                raise BatchFailure(start + 1, start + len(batch), result)
        return results

    async def _enrich_item(self, stargazer: RawStargazer) -> ItemOutcome:
        s = self._settings
        retrying = AsyncRetrying(
            stop=stop_after_attempt(s.max_item_attempts),
            wait=wait_exponential(multiplier=s.item_backoff_base, max=s.item_backoff_max),
            retry=(
                retry_if_exception_type(StargazerError)
                & retry_if_not_exception_type(Aborted)
            ),
            before_sleep=log_retry,
            sleep=self._cancel.sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    profile = await self._client.user_profile(stargazer.login)
        except Aborted:
            raise
        except StargazerError as exc:
            logger.error(
                f"Failed to fetch user {stargazer.login} after {s.max_item_attempts} retries: {exc}"
            )
            return Failed(login=stargazer.login, reason=str(exc))

        if profile is None:
            logger.info(f"User {stargazer.login} not found; skipping")
            return Absent(login=stargazer.login)

        total_stars = await self._stars.total_stars(stargazer.login)
        return Present(
            user=EnrichedUser.from_profile(
                profile, total_stars=total_stars, starred_at=stargazer.starred_at
            )
        )
