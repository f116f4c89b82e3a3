import asyncio
import logging
from collections.abc import AsyncIterator, Sequence

from ghstargazers.models import (
    EnrichedUser,
    ProgressEvent,
    ProgressUpdate,
    RunComplete,
    RunFailed,
)

logger = logging.getLogger(__name__)

_CLOSED = object()


class RunAggregator:
    """Running totals for one run, published as events on an unbounded queue.

    Producers call the reporting methods synchronously; the consumer reads
    ``events()`` at its own pace. At most one terminal event is ever queued.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._terminated = False
        self._closed = False
        self.total: int | None = None
        self.processed = 0
        self.users: list[EnrichedUser] = []

    @property
    def terminated(self) -> bool:
        return self._terminated

    def _emit(self, event: ProgressEvent) -> None:
        if self._terminated or self._closed:
            raise RuntimeError(f"Run already finished; dropping {event.type} event")
        self._queue.put_nowait(event)

    # --- collecting phase ---

    def collection_progress(self, message: str, *, cap: int, fetched: int) -> None:
        self.total = cap
        self._emit(
            ProgressUpdate(message=message, phase="collecting", total=cap, fetched=fetched)
        )

    # --- enriching phase ---

    def begin_enrichment(self, total: int) -> None:
        self.total = total
        self.processed = 0
        self._emit(
            ProgressUpdate(
                message=f"Found {total} stargazers, starting detailed analysis...",
                phase="enriching",
                total=total,
                processed=0,
            )
        )

    def enrichment_notice(self, message: str) -> None:
        self._emit(
            ProgressUpdate(
                message=message,
                phase="enriching",
                total=self.total,
                processed=self.processed,
            )
        )

    def batch_done(
        self, size: int, users: Sequence[EnrichedUser], message: str | None = None
    ) -> None:
        """Count ``size`` items as processed and publish the users they yielded."""
        self.processed += size
        self.users.extend(users)
        self._emit(
            ProgressUpdate(
                message=message or f"Processed {self.processed} of {self.total} users",
                phase="enriching",
                total=self.total,
                processed=self.processed,
                users=tuple(users),
            )
        )

    # --- terminal ---

    def complete(self, message: str) -> None:
        users = tuple(self.users)
        self._emit(RunComplete(message=message, users=users, total=len(users)))
        self._terminated = True

    def fail(self, message: str) -> None:
        self._emit(RunFailed(message=message))
        self._terminated = True

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def events(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
