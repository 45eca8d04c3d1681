from .rate_store import LocalRateStore, RateStore, SharedRateStore
from .redis_cache import KeyValueClient, RedisKeyValueClient

__all__ = ['KeyValueClient', 'LocalRateStore', 'RateStore', 'RedisKeyValueClient', 'SharedRateStore']
