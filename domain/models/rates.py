import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any

DEFAULT_BASE_CURRENCY = "USD"
IDENTITY_SOURCE = "identity"


class CacheState(Enum):
    EMPTY = "EMPTY"
    FRESH = "FRESH"
    STALE = "STALE"
    REFRESHING = "REFRESHING"


def to_rate(value: Any) -> Decimal | None:
    """Coerce a raw rate value to a finite Decimal, or None when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float, str)):
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            return None
        return rate if rate.is_finite() else None
    return None


@dataclass(frozen=True)
class RateSnapshot:
    """
    One immutable table of rates relative to the base currency.

    `rates` maps an uppercase currency code to the number of units of that
    currency one unit of the base buys. The base entry is always 1.
    """
    rates: Mapping[str, Decimal]
    fetched_at: datetime
    source: str
    base_currency: str = DEFAULT_BASE_CURRENCY
    is_synthetic: bool = False

    def __post_init__(self):
        rates = {code.upper(): rate for code, rate in self.rates.items()}
        rates[self.base_currency] = Decimal("1")
        object.__setattr__(self, "rates", MappingProxyType(rates))

    @classmethod
    def identity(cls, base_currency: str = DEFAULT_BASE_CURRENCY,
                 fetched_at: datetime | None = None) -> "RateSnapshot":
        return cls(
            rates={base_currency: Decimal("1")},
            fetched_at=fetched_at or datetime.now(UTC),
            source=IDENTITY_SOURCE,
            base_currency=base_currency,
            is_synthetic=True,
        )

    def rate_for(self, currency: str) -> Decimal | None:
        """Usable rate for `currency`, or None when absent, non-numeric or non-positive."""
        rate = to_rate(self.rates.get(currency.upper()))
        if rate is None or rate <= 0:
            return None
        return rate

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now(UTC)) - self.fetched_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_currency": self.base_currency,
            "rates": {code: str(rate) for code, rate in self.rates.items()},
            "fetched_at": self.fetched_at.isoformat(),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateSnapshot":
        rates = {}
        for code, raw in data["rates"].items():
            rate = to_rate(raw)
            if rate is None or rate <= 0:
                raise ValueError(f"Invalid rate for {code}: {raw!r}")
            rates[code] = rate

        fetched_at = datetime.fromisoformat(data["fetched_at"])
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)

        return cls(
            rates=rates,
            fetched_at=fetched_at,
            source=data.get("source", "unknown"),
            base_currency=data.get("base_currency", DEFAULT_BASE_CURRENCY),
        )


@dataclass(frozen=True)
class StoredSnapshot:
    snapshot: RateSnapshot
    age: timedelta


@dataclass(frozen=True)
class SourceResult:
    source: str
    rates: dict[str, Decimal]


@dataclass(frozen=True)
class RefreshOutcome:
    """What a refresh produced, for schedulers and operators."""
    snapshot: RateSnapshot
    succeeded: bool
    error: Exception | None = None
    from_store: bool = False


@dataclass(frozen=True)
class ConversionResult:
    original_amount: Decimal | float | int
    converted_amount: Decimal | float | int
    base_currency: str
    target_currency: str
    rate: Decimal | None
    source: str | None
    fetched_at: datetime | None
    is_identity: bool = False
    warnings: list[str] = field(default_factory=list)
