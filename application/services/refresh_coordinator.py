import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from application.services.source_chain import SourceChain
from domain.exceptions.currency import AllSourcesFailedError
from domain.models.rates import DEFAULT_BASE_CURRENCY, CacheState, RateSnapshot, RefreshOutcome
from infrastructure.cache.rate_store import RateStore

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """
    Owns the current rate snapshot and decides when it has to be refreshed.

    Reads against a fresh snapshot return without any I/O. When the snapshot is
    missing or older than the TTL, exactly one refresh runs at a time and every
    concurrent caller waits on that same task. A failed refresh keeps serving
    the previous snapshot, or an identity snapshot when there never was one.
    """

    def __init__(
        self,
        chain: SourceChain,
        store: RateStore,
        ttl: timedelta = timedelta(hours=1),
        base_currency: str = DEFAULT_BASE_CURRENCY,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.chain = chain
        self.store = store
        self.ttl = ttl
        self.base_currency = base_currency
        self._clock = clock

        self._snapshot: RateSnapshot | None = None
        self._inflight: asyncio.Task | None = None
        self.last_error: Exception | None = None
        self.last_refresh_attempt: datetime | None = None
        self._pending_saves: set[asyncio.Task] = set()

    @property
    def state(self) -> CacheState:
        if self._inflight is not None and not self._inflight.done():
            return CacheState.REFRESHING
        if self._snapshot is None:
            return CacheState.EMPTY
        if self._is_fresh(self._snapshot):
            return CacheState.FRESH
        return CacheState.STALE

    def peek(self) -> RateSnapshot | None:
        """Current snapshot without triggering a refresh."""
        return self._snapshot

    async def get_snapshot(self) -> RateSnapshot:
        snapshot = self._snapshot
        if snapshot is not None and self._is_fresh(snapshot):
            return snapshot

        outcome = await self._join_refresh(force=False)
        return outcome.snapshot

    async def force_refresh(self) -> RefreshOutcome:
        """
        Fetch from upstream regardless of freshness.

        Joins a refresh already in flight. When that refresh only adopted a
        stored snapshot, a new upstream fetch is started afterwards.
        """
        outcome = await self._join_refresh(force=True)
        if outcome.from_store:
            logger.info("Forced refresh joined a refresh served from the store, fetching upstream")
            outcome = await self._join_refresh(force=True)
        return outcome

    async def initialize(self) -> RefreshOutcome:
        """Warm up on startup: adopt a stored snapshot, refresh if it is not fresh."""
        logger.info("Initializing exchange rates...")
        outcome = await self._join_refresh(force=False)
        if outcome.succeeded:
            logger.info(f"Exchange rates ready from {outcome.snapshot.source}")
        else:
            logger.warning(f"Exchange rates initialized in degraded mode (source: {outcome.snapshot.source})")
        return outcome

    def status(self) -> dict:
        snapshot = self._snapshot
        return {
            "state": self.state.value,
            "base_currency": self.base_currency,
            "ttl_seconds": int(self.ttl.total_seconds()),
            "store_backend": self.store.backend,
            "source": snapshot.source if snapshot else None,
            "fetched_at": snapshot.fetched_at.isoformat() if snapshot else None,
            "age_seconds": int(snapshot.age(self._clock()).total_seconds()) if snapshot else None,
            "rates_count": len(snapshot.rates) if snapshot else 0,
            "last_refresh_attempt": self.last_refresh_attempt.isoformat() if self.last_refresh_attempt else None,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def _is_fresh(self, snapshot: RateSnapshot) -> bool:
        if snapshot.is_synthetic:
            return False
        return snapshot.age(self._clock()) < self.ttl

    async def _join_refresh(self, force: bool) -> RefreshOutcome:
        task = self._inflight
        if task is None or task.done():
            task = asyncio.create_task(self._refresh(force))
            self._inflight = task
            task.add_done_callback(self._clear_inflight)

        # A cancelled waiter must not cancel the refresh the others are waiting on
        return await asyncio.shield(task)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _refresh(self, force: bool) -> RefreshOutcome:
        previous = self._snapshot if self._snapshot and not self._snapshot.is_synthetic else None

        if not force:
            stored = await self.store.load()
            if stored is not None and (previous is None or stored.snapshot.fetched_at > previous.fetched_at):
                previous = stored.snapshot
                if self._is_fresh(previous):
                    logger.info(f"Loaded rates from {self.store.backend} store (age {stored.age})")
                    self._install(previous)
                    return RefreshOutcome(snapshot=previous, succeeded=True, from_store=True)

        self.last_refresh_attempt = self._clock()
        logger.info(f"Fetching exchange rates for base {self.base_currency}...")
        try:
            result = await self.chain.fetch(self.base_currency)
        except AllSourcesFailedError as e:
            if previous is None and force:
                stored = await self.store.load()
                previous = stored.snapshot if stored is not None else None
            return self._on_refresh_failure(e, previous)

        snapshot = RateSnapshot(
            rates=result.rates,
            fetched_at=self._clock(),
            source=result.source,
            base_currency=self.base_currency,
        )
        self._install(snapshot)
        self.last_error = None
        self._save_in_background(snapshot)
        return RefreshOutcome(snapshot=snapshot, succeeded=True)

    def _on_refresh_failure(self, error: AllSourcesFailedError,
                            previous: RateSnapshot | None) -> RefreshOutcome:
        self.last_error = error

        if previous is not None:
            logger.error(
                f"Failed to refresh rates, serving stale rates from {previous.source} "
                f"(age {previous.age(self._clock())}): {error}"
            )
            self._install(previous)
            return RefreshOutcome(snapshot=previous, succeeded=False, error=error)

        logger.error(f"Failed to fetch rates and no cached rates exist, using identity rates: {error}")
        identity = RateSnapshot.identity(self.base_currency, fetched_at=self._clock())
        self._install(identity)
        return RefreshOutcome(snapshot=identity, succeeded=False, error=error)

    def _install(self, snapshot: RateSnapshot) -> None:
        self._snapshot = snapshot

    def _save_in_background(self, snapshot: RateSnapshot) -> None:
        # Waiters are released before the store write completes
        task = asyncio.create_task(self.store.save(snapshot))
        self._pending_saves.add(task)
        task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._pending_saves.discard(task)
        if task.cancelled():
            logger.warning(f"Saving rates to {self.store.backend} store was cancelled")
        elif task.exception() is not None:
            logger.error(f"Failed to save rates to {self.store.backend} store: {task.exception()}")

    async def flush(self) -> None:
        """Wait for store writes still in flight."""
        if self._pending_saves:
            await asyncio.gather(*self._pending_saves, return_exceptions=True)
