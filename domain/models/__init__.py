from .countries import COUNTRY_TO_CURRENCY
from .rates import (
    DEFAULT_BASE_CURRENCY,
    CacheState,
    ConversionResult,
    RateSnapshot,
    RefreshOutcome,
    SourceResult,
    StoredSnapshot,
)

__all__ = [
    "COUNTRY_TO_CURRENCY",
    "DEFAULT_BASE_CURRENCY",
    "CacheState",
    "ConversionResult",
    "RateSnapshot",
    "RefreshOutcome",
    "SourceResult",
    "StoredSnapshot",
]
