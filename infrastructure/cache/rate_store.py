import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from domain.exceptions.currency import StoreReadError, StoreWriteError
from domain.models.rates import RateSnapshot, StoredSnapshot
from infrastructure.cache.redis_cache import KeyValueClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RateStore(ABC):
    """Holder of the latest snapshot. Neither method raises."""

    def __init__(self, clock: Clock = _utcnow):
        self._clock = clock

    @abstractmethod
    async def save(self, snapshot: RateSnapshot) -> None:
        ...

    @abstractmethod
    async def load(self) -> StoredSnapshot | None:
        ...

    def _stored(self, snapshot: RateSnapshot | None) -> StoredSnapshot | None:
        if snapshot is None:
            return None
        return StoredSnapshot(snapshot=snapshot, age=snapshot.age(self._clock()))

    @property
    def backend(self) -> str:
        return "local"


class LocalRateStore(RateStore):
    """In-process reference, valid for this instance only and lost on restart."""

    def __init__(self, clock: Clock = _utcnow):
        super().__init__(clock)
        self._snapshot: RateSnapshot | None = None

    async def save(self, snapshot: RateSnapshot) -> None:
        self._snapshot = snapshot
        logger.debug(f"Saved rates from {snapshot.source} to in-memory store")

    async def load(self) -> StoredSnapshot | None:
        return self._stored(self._snapshot)

    def peek(self) -> RateSnapshot | None:
        return self._snapshot


class SharedRateStore(RateStore):
    """
    Snapshot kept under one well-known key of a shared key/value store, so all
    running instances observe the same rates.

    Every snapshot seen here is mirrored into a local store. When the shared
    backend cannot be written, the snapshot still lands locally; when it cannot
    be read, the last locally known snapshot is served.
    """

    def __init__(self, client: KeyValueClient, ttl: timedelta, key: str = "exchange_rates_cache",
                 local: LocalRateStore | None = None, clock: Clock = _utcnow):
        super().__init__(clock)
        self.client = client
        self.key = key
        self.ttl_seconds = max(int(ttl.total_seconds()), 1)
        self.local = local or LocalRateStore(clock)

    @property
    def backend(self) -> str:
        return "shared"

    async def save(self, snapshot: RateSnapshot) -> None:
        await self.local.save(snapshot)
        try:
            await self._write(snapshot)
        except StoreWriteError as e:
            logger.error(f"Error saving rates to shared cache, keeping in-memory copy only: {e}")
            return
        logger.info(f"Saved rates from {snapshot.source} to shared cache under {self.key}")

    async def load(self) -> StoredSnapshot | None:
        try:
            snapshot = await self._read()
        except StoreReadError as e:
            logger.error(f"Error loading rates from shared cache, using in-memory copy: {e}")
            return await self.local.load()

        if snapshot is None:
            return None

        await self.local.save(snapshot)
        return self._stored(snapshot)

    async def _write(self, snapshot: RateSnapshot) -> None:
        try:
            await self.client.set(self.key, json.dumps(snapshot.to_dict()), self.ttl_seconds)
        except Exception as e:
            raise StoreWriteError(f"Failed to write {self.key}: {e}") from e

    async def _read(self) -> RateSnapshot | None:
        try:
            raw = await self.client.get(self.key)
        except Exception as e:
            raise StoreReadError(f"Failed to read {self.key}: {e}") from e

        if not raw:
            return None

        try:
            return RateSnapshot.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreReadError(f"Invalid cached data under {self.key}: {e}") from e
