from datetime import datetime


class CurrencyException(Exception):
    pass


class SourceFetchError(CurrencyException):
    """One upstream rate provider failed (network, timeout, HTTP status or malformed body)."""

    def __init__(self, source: str, message: str, transient: bool = False):
        self.source = source
        self.transient = transient
        super().__init__(f"{source}: {message}")


class AllSourcesFailedError(CurrencyException):
    """Every source in the chain failed; carries the individual errors for diagnostics."""

    def __init__(self, errors: list[Exception]):
        self.errors = errors
        detail = "; ".join(str(e) for e in errors) or "no sources configured"
        super().__init__(f"All rate sources failed: {detail}")

    @property
    def last_error(self) -> Exception | None:
        return self.errors[-1] if self.errors else None


class CircuitBreakerError(CurrencyException):
    """Raised when circuit breaker is open and blocking calls"""

    def __init__(self, source: str, failure_count: int, opened_at: datetime | None):
        self.source = source
        self.failure_count = failure_count
        self.opened_at = opened_at
        super().__init__(f"Circuit breaker OPEN for {source} ({failure_count} failures)")


class CacheError(CurrencyException):
    pass


class StoreReadError(CacheError):
    pass


class StoreWriteError(CacheError):
    pass
