import asyncio
import inspect
import logging
from collections.abc import Awaitable
from typing import TypeVar

from .errors import Aborted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Stop signal shared by every request, retry and sleep of one run.

    A token is created by whoever starts the run and bound to exactly one run.
    ``cancel()`` may be called any number of times and from any thread.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._cancelled = False
        self._bound = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self) -> None:
        """Attach the token to the running loop. A token serves one run only."""
        if self._bound:
            raise RuntimeError("CancellationToken is already bound to a run")
        self._bound = True
        self._loop = asyncio.get_running_loop()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        loop = self._loop
        if loop is None or loop.is_closed():
            self._event.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._event.set()
        else:
            loop.call_soon_threadsafe(self._event.set)
        logger.debug("Cancellation requested")

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise Aborted()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, raising ``Aborted`` as soon as cancelled."""
        self.raise_if_cancelled()
        if delay <= 0:
            await asyncio.sleep(0)
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise Aborted()

    async def guard(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless cancelled first, in which case it is torn down."""
        if self._cancelled:
            if inspect.iscoroutine(aw):
                aw.close()
            raise Aborted()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        await asyncio.wait({task})
        raise Aborted()
