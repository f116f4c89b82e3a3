from collections.abc import Mapping
from time import time

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"


def is_rate_limited(status: int, headers: Mapping[str, str]) -> bool:
    """True for a 403 whose remaining-quota header is exactly ``0``."""
    return status == 403 and headers.get(REMAINING_HEADER) == "0"


def seconds_until_reset(headers: Mapping[str, str], now: float | None = None) -> float:
    """Seconds until the advertised quota reset, floored at 0.

    A missing or unparsable reset header means "now".
    """
    raw = headers.get(RESET_HEADER)
    if raw is None:
        return 0.0
    try:
        reset_at = float(raw)
    except ValueError:
        return 0.0
    current = time() if now is None else now
    return max(0.0, reset_at - current)
