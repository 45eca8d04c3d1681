"""
Shared test configuration and fixtures.
"""
import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock

import httpx
import pytest
from tenacity import wait_none

from application.services import ConversionEngine, MissingRateMonitor, RefreshCoordinator, SourceChain
from domain.exceptions.currency import SourceFetchError
from domain.models.rates import RateSnapshot
from infrastructure.cache.rate_store import LocalRateStore

NOW = datetime(2025, 11, 5, 10, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSource:
    """Rate source returning canned rates or raising a canned error"""

    def __init__(self, name: str, rates: dict | None = None, error: Exception | None = None,
                 delay: float = 0):
        self.name = name
        self.rates = rates
        self.error = error
        self.delay = delay
        self.calls = 0
        self.closed = False

    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {code: Decimal(str(rate)) for code, rate in self.rates.items()}

    async def close(self) -> None:
        self.closed = True


def failing_source(name: str = "broken") -> FakeSource:
    return FakeSource(name, error=SourceFetchError(name, "HTTP error 503: Service Unavailable"))


def make_snapshot(rates: dict, fetched_at: datetime = NOW, source: str = "test") -> RateSnapshot:
    return RateSnapshot(
        rates={code: Decimal(str(rate)) for code, rate in rates.items()},
        fetched_at=fetched_at,
        source=source,
    )


def make_response(json_data, status_code: int = 200) -> Mock:
    """Mock httpx response"""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.raise_for_status = Mock()
    return response


def http_status_error(status_code: int, text: str = "error") -> httpx.HTTPStatusError:
    error_response = Mock()
    error_response.status_code = status_code
    error_response.text = text
    return httpx.HTTPStatusError("HTTP error", request=Mock(), response=error_response)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def local_store(clock):
    return LocalRateStore(clock=clock)


def build_engine(sources: list, clock: FakeClock, store=None, ttl: timedelta = timedelta(hours=1)):
    chain = SourceChain(sources=sources, timeout=1, retry_attempts=1, retry_wait=wait_none())
    coordinator = RefreshCoordinator(
        chain=chain,
        store=store or LocalRateStore(clock=clock),
        ttl=ttl,
        base_currency="USD",
        clock=clock,
    )
    engine = ConversionEngine(coordinator, MissingRateMonitor(clock=clock))
    return engine, coordinator
