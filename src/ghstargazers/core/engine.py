import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol

from ghstargazers.api import (
    Aborted,
    ApiResponse,
    CancellationToken,
    GithubClient,
    StargazerError,
    transport_factory,
)
from ghstargazers.config import Settings, get_settings
from ghstargazers.models import (
    ProgressEvent,
    RunComplete,
    RunFailed,
    RunRequest,
    RunResult,
)
from .emitter import RunAggregator
from .enricher import StargazerEnricher
from .paginator import StargazerPaginator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Any]


class TransportLike(Protocol):
    async def __aenter__(self) -> "TransportLike": ...

    async def __aexit__(self, *exc) -> Any: ...

    async def get(
        self,
        url: str,
        *,
        params: Any = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
    ) -> ApiResponse: ...


TransportFactory = Callable[[str, CancellationToken], TransportLike]


class StargazerEngine:
    """Collects up to ``cap`` stargazers of a repository and enriches them.

    One engine may serve many runs; every run gets its own
    ``CancellationToken``, either passed in by the caller or created here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: TransportFactory | None = None,
    ):
        self._settings = settings or get_settings()
        self._transport = transport or transport_factory(self._settings)
        self._active: set[CancellationToken] = set()

    def cancel(self) -> None:
        """Stop every active run. Safe to call repeatedly or with nothing running."""
        for token in list(self._active):
            token.cancel()

    async def run(
        self,
        owner: str,
        repo: str,
        cap: int,
        token: str,
        on_progress: ProgressCallback | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> RunResult:
        terminal: RunComplete | RunFailed | None = None
        async for event in self.stream(owner, repo, cap, token, cancel_token=cancel_token):
            if on_progress is not None:
                outcome = on_progress(event)
                if inspect.isawaitable(outcome):
                    await outcome
            if event.type != "progress":
                terminal = event

        if isinstance(terminal, RunComplete):
            return RunResult(status="complete", message=terminal.message, users=terminal.users)
        if isinstance(terminal, RunFailed):
            return RunResult(status="error", message=terminal.message)
        return RunResult(status="stopped", message="Analysis stopped")

    async def stream(
        self,
        owner: str,
        repo: str,
        cap: int,
        token: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield the run's events in order; the last one is terminal unless stopped."""
        request = RunRequest(owner=owner, repo=repo, cap=cap, token=token)
        cancel = cancel_token or CancellationToken()
        cancel.bind()
        self._active.add(cancel)
        aggregator = RunAggregator()
        task = asyncio.create_task(self._execute(request, cancel, aggregator))
        try:
            async for event in aggregator.events():
                yield event
            await task
        finally:
            if not task.done():
                cancel.cancel()
                await asyncio.wait({task})
            self._active.discard(cancel)

    async def _execute(
        self, request: RunRequest, cancel: CancellationToken, aggregator: RunAggregator
    ) -> None:
        s = self._settings
        logger.info(
            f"Starting run for {request.owner}/{request.repo}. Cap: {request.cap}"
        )
        try:
            async with self._transport(request.token, cancel) as transport:
                client = GithubClient(transport, s)
                paginator = StargazerPaginator(client, aggregator, cancel, s)
                stargazers = await paginator.collect(request.owner, request.repo, request.cap)

                if not stargazers:
                    aggregator.fail("No stargazers found for this repository")
                    return

                aggregator.begin_enrichment(len(stargazers))
                enricher = StargazerEnricher(client, aggregator, cancel, s)
                users = await enricher.enrich(stargazers)

            aggregator.complete(
                f"Analysis complete! Successfully processed {len(users)} users "
                f"out of {len(stargazers)} stargazers."
            )
            logger.info(f"✔ Run finished: {len(users)}/{len(stargazers)} users enriched")
        except Aborted:
            logger.info(f"Run for {request.owner}/{request.repo} stopped by caller")
        except StargazerError as exc:
            logger.error(f"Run for {request.owner}/{request.repo} failed: {exc}")
            aggregator.fail(str(exc))
        except Exception as exc:
            logger.error(
                f"Unexpected error during run for {request.owner}/{request.repo}: {exc}",
                exc_info=True,
            )
            aggregator.fail(f"An unexpected error occurred: {exc}")
        finally:
            aggregator.close()
