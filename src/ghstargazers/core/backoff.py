def backoff_delay(failures: int, *, base: float, cap: float) -> float:
    """Delay after the ``failures``-th consecutive failure: base * 2^(n-1), capped."""
    return min(base * 2 ** (failures - 1), cap)
