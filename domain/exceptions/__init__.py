from .currency import (
    AllSourcesFailedError,
    CacheError,
    CircuitBreakerError,
    CurrencyException,
    SourceFetchError,
    StoreReadError,
    StoreWriteError,
)

__all__ = [
    "AllSourcesFailedError",
    "CacheError",
    "CircuitBreakerError",
    "CurrencyException",
    "SourceFetchError",
    "StoreReadError",
    "StoreWriteError",
]
