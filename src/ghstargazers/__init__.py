"""Rate-limit-aware collection and enrichment of a repository's stargazers."""

from ghstargazers.api import CancellationToken
from ghstargazers.core import StargazerEngine
from ghstargazers.models import (
    EnrichedUser,
    ProgressEvent,
    ProgressUpdate,
    RunComplete,
    RunFailed,
    RunResult,
)

__all__ = [
    "CancellationToken",
    "EnrichedUser",
    "ProgressEvent",
    "ProgressUpdate",
    "RunComplete",
    "RunFailed",
    "RunResult",
    "StargazerEngine",
]
