import logging
from collections.abc import Mapping
from typing import Any

import aiohttp
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ghstargazers.config import Settings, get_settings
from .cancellation import CancellationToken
from .errors import Aborted, MaxRetriesExceeded

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    """Fully read response; header names are lower-cased."""

    status: int
    reason: str = ""
    headers: dict[str, str] = {}
    payload: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# --- Tenacity Callbacks ---
def log_retry(retry_state: RetryCallState):
    """Log retry attempts."""
    attempt = retry_state.attempt_number
    exception = retry_state.outcome.exception()
    wait_time = retry_state.next_action.sleep
    logger.warning(
        f"Retrying attempt {attempt} after exception {exception!r}. Waiting {wait_time:.2f}s."
    )


class Transport:
    """Single-request executor: auth headers, per-attempt deadline, retries.

    Every attempt and every backoff sleep goes through the run's
    ``CancellationToken``; once it fires, nothing is retried.
    """

    def __init__(
        self,
        token: str,
        cancel: CancellationToken,
        *,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._cancel = cancel
        self._headers = {
            "Accept": self._settings.stargazer_media_type,
            "Authorization": f"Bearer {token}",
            "User-Agent": self._settings.user_agent,
        }
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self):
        self._session = aiohttp.ClientSession(headers=self._headers)
        return self

    async def __aexit__(self, *exc):
        await self._session.close()  # type: ignore[union-attr]

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
    ) -> ApiResponse:
        """GET ``url``. Non-2xx statuses are returned, not raised."""
        timeout = self._settings.request_timeout if timeout is None else timeout
        attempts = self._settings.max_attempts if max_attempts is None else max_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=self._settings.transport_backoff_base,
                max=self._settings.transport_backoff_max,
            ),
            retry=(
                retry_if_exception_type(Exception)
                & retry_if_not_exception_type(Aborted)
            ),
            before_sleep=log_retry,
            sleep=self._cancel.sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    self._cancel.raise_if_cancelled()
                    return await self._cancel.guard(
                        self._attempt(url, params, timeout)
                    )
        except RetryError as exc:
            raise MaxRetriesExceeded(
                url, attempts, exc.last_attempt.exception()
            ) from exc
        raise MaxRetriesExceeded(url, attempts)  # pragma: no cover

    async def _attempt(
        self, url: str, params: Mapping[str, Any] | None, timeout: float
    ) -> ApiResponse:
        logger.debug(f"GET {url} params={dict(params or {})}")
        async with self._session.get(  # type: ignore[union-attr]
            url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            ok = 200 <= resp.status < 300
            try:
                payload = await resp.json(content_type=None)
            except ValueError:
                if ok:
                    raise
                payload = None
            return ApiResponse(
                status=resp.status,
                reason=resp.reason or "",
                headers={k.lower(): v for k, v in resp.headers.items()},
                payload=payload,
            )


def transport_factory(settings: Settings):
    """Build a ``(token, cancel) -> Transport`` callable bound to ``settings``."""

    def factory(token: str, cancel: CancellationToken) -> Transport:
        return Transport(token, cancel, settings=settings)

    return factory
