import logging
from datetime import timedelta

from application.services.circuit_breaker import CircuitBreaker
from application.services.conversion_service import ConversionEngine
from application.services.country_resolver import CountryCurrencyResolver
from application.services.missing_rate_monitor import MissingRateMonitor
from application.services.refresh_coordinator import RefreshCoordinator
from application.services.source_chain import SourceChain
from config.settings import Settings
from infrastructure.cache.rate_store import LocalRateStore, RateStore, SharedRateStore
from infrastructure.cache.redis_cache import RedisKeyValueClient
from infrastructure.providers import (
    BaseRateSource,
    CurrencyAPIProvider,
    ExchangeRateHostProvider,
    FixerIOProvider,
    OpenERAPIProvider,
    OpenExchangeProvider,
)

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory to create and wire up the rate engine once per process"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.redis_client: RedisKeyValueClient | None = None
        self.sources: list[BaseRateSource] = []
        self.circuit_breakers: dict[str, CircuitBreaker] = {}
        self.chain: SourceChain | None = None
        self.store: RateStore | None = None
        self.coordinator: RefreshCoordinator | None = None
        self.missing_rate_monitor: MissingRateMonitor | None = None
        self.conversion_engine: ConversionEngine | None = None
        self.country_resolver = CountryCurrencyResolver(base_currency=settings.BASE_CURRENCY)

    def create_sources(self) -> list[BaseRateSource]:
        """Sources in configured priority order; keyed providers are skipped without a key"""
        s = self.settings
        timeout = s.SOURCE_TIMEOUT_SECONDS
        builders = {
            "exchangerate_host": lambda: ExchangeRateHostProvider(
                base_url=s.EXCHANGERATE_HOST_URL, access_key=s.EXCHANGERATE_HOST_ACCESS_KEY, timeout=timeout
            ),
            "open_er_api": lambda: OpenERAPIProvider(base_url=s.OPEN_ER_API_URL, timeout=timeout),
            "openexchange": lambda: OpenExchangeProvider(app_id=s.OPENEXCHANGE_APP_ID, timeout=timeout)
            if s.OPENEXCHANGE_APP_ID else None,
            "fixerio": lambda: FixerIOProvider(api_key=s.FIXERIO_API_KEY, timeout=timeout)
            if s.FIXERIO_API_KEY else None,
            "currencyapi": lambda: CurrencyAPIProvider(api_key=s.CURRENCYAPI_API_KEY, timeout=timeout)
            if s.CURRENCYAPI_API_KEY else None,
        }

        sources = []
        for name in s.rate_source_names:
            builder = builders.get(name)
            if builder is None:
                logger.warning(f"Unknown rate source '{name}' in RATE_SOURCES, ignoring it")
                continue
            source = builder()
            if source is None:
                logger.info(f"Rate source '{name}' has no API key configured, skipping it")
                continue
            sources.append(source)
        return sources

    def create_store(self) -> RateStore:
        if not self.settings.REDIS_URL:
            logger.info("No REDIS_URL configured, using in-memory rate store")
            return LocalRateStore()

        self.redis_client = RedisKeyValueClient.from_url(self.settings.REDIS_URL)
        logger.info("Using shared Redis rate store")
        return SharedRateStore(
            client=self.redis_client,
            ttl=timedelta(seconds=self.settings.RATES_TTL_SECONDS),
            key=self.settings.RATES_CACHE_KEY,
        )

    def create_conversion_engine(self) -> ConversionEngine:
        """Create the fully configured engine with its sources, store and coordinator"""
        s = self.settings

        # Step 1: sources and one circuit breaker per source
        self.sources = self.create_sources()
        self.circuit_breakers = {
            source.name: CircuitBreaker(
                source_name=source.name,
                failure_threshold=s.CB_FAILURE_THRESHOLD,
                recovery_timeout=s.CB_RECOVERY_TIMEOUT,
                success_threshold=s.CB_SUCCESS_THRESHOLD,
            )
            for source in self.sources
        }
        self.chain = SourceChain(
            sources=self.sources,
            timeout=s.SOURCE_TIMEOUT_SECONDS,
            retry_attempts=s.SOURCE_RETRY_ATTEMPTS,
            circuit_breakers=self.circuit_breakers,
        )

        # Step 2: store and coordinator
        self.store = self.create_store()
        self.coordinator = RefreshCoordinator(
            chain=self.chain,
            store=self.store,
            ttl=timedelta(seconds=s.RATES_TTL_SECONDS),
            base_currency=s.BASE_CURRENCY,
        )

        # Step 3: engine
        self.missing_rate_monitor = MissingRateMonitor(
            log_interval=timedelta(seconds=s.MISSING_RATE_LOG_INTERVAL_SECONDS)
        )
        self.conversion_engine = ConversionEngine(self.coordinator, self.missing_rate_monitor)

        logger.info(
            f"Conversion engine created with {len(self.sources)} rate sources "
            f"({', '.join(self.chain.source_names) or 'none'}), base {s.BASE_CURRENCY}"
        )
        return self.conversion_engine

    def get_health_status(self) -> dict:
        if self.coordinator is None or self.missing_rate_monitor is None:
            return {"status": "not_initialized"}

        coordinator_status = self.coordinator.status()
        snapshot = self.coordinator.peek()
        return {
            "status": "healthy" if snapshot is not None and not snapshot.is_synthetic else "degraded",
            "rates": coordinator_status,
            "sources": {name: cb.get_status() for name, cb in self.circuit_breakers.items()},
            "missing_rates": self.missing_rate_monitor.counts(),
        }

    async def cleanup(self):
        """Clean up all services"""
        if self.coordinator is not None:
            await self.coordinator.flush()
        if self.chain is not None:
            await self.chain.close()
        if self.redis_client is not None:
            await self.redis_client.close()
        logger.info("Services cleaned up successfully")
