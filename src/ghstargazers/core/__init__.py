from .emitter import RunAggregator
from .engine import StargazerEngine
from .enricher import StargazerEnricher
from .paginator import StargazerPaginator
from .stars import StarCounter

__all__ = [
    "RunAggregator",
    "StarCounter",
    "StargazerEngine",
    "StargazerEnricher",
    "StargazerPaginator",
]
