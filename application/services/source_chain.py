import asyncio
import logging
import time
from decimal import Decimal

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from application.services.circuit_breaker import CircuitBreaker
from domain.exceptions.currency import AllSourcesFailedError, CircuitBreakerError, SourceFetchError
from domain.models.rates import SourceResult
from infrastructure.providers.base import BaseRateSource

logger = logging.getLogger(__name__)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, SourceFetchError) and error.transient


class SourceChain:
    """
    Ordered fallback over rate sources: the first source that returns a valid
    table wins, and tables from different sources are never combined.
    """

    def __init__(
        self,
        sources: list[BaseRateSource],
        timeout: float = 10,
        retry_attempts: int = 2,
        circuit_breakers: dict[str, CircuitBreaker] | None = None,
        retry_wait: wait_base | None = None,
    ):
        self.sources = sources
        self.timeout = timeout
        self.retry_attempts = max(retry_attempts, 1)
        self.circuit_breakers = circuit_breakers or {}
        self.retry_wait = retry_wait or wait_exponential(multiplier=0.5, max=2)

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    async def fetch(self, base: str) -> SourceResult:
        errors: list[Exception] = []

        for source in self.sources:
            start_time = time.time()
            try:
                rates = await self._call_source(source, base)
            except CircuitBreakerError as e:
                logger.warning(f"Skipping {source.name}: {e}")
                errors.append(e)
                continue
            except SourceFetchError as e:
                logger.warning(f"Rate source {source.name} failed: {e}")
                errors.append(e)
                continue

            response_time_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"Fetched {len(rates)} rates for {base} from {source.name} in {response_time_ms}ms"
            )
            return SourceResult(source=source.name, rates=rates)

        raise AllSourcesFailedError(errors)

    async def _call_source(self, source: BaseRateSource, base: str) -> dict[str, Decimal]:
        breaker = self.circuit_breakers.get(source.name)
        if breaker is None:
            return await self._fetch_with_retry(source, base)
        return await breaker.call(lambda: self._fetch_with_retry(source, base))

    async def _fetch_with_retry(self, source: BaseRateSource, base: str) -> dict[str, Decimal]:
        rates: dict[str, Decimal] = {}
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                rates = await self._fetch_once(source, base)
        return rates

    async def _fetch_once(self, source: BaseRateSource, base: str) -> dict[str, Decimal]:
        try:
            return await asyncio.wait_for(source.fetch_rates(base), timeout=self.timeout)
        except TimeoutError as e:
            raise SourceFetchError(source.name, f"Timeout after {self.timeout}s") from e
        except SourceFetchError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error from {source.name}: {e}", exc_info=True)
            raise SourceFetchError(source.name, f"Unexpected error: {e}") from e

    async def close(self) -> None:
        for source in self.sources:
            await source.close()
