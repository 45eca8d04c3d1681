from typing import Protocol

from redis import asyncio as redis


class KeyValueClient(Protocol):
    """Minimal contract a shared cache backend has to offer."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...


class RedisKeyValueClient:
    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str, socket_timeout: float = 2.0) -> "RedisKeyValueClient":
        return cls(redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        ))

    async def get(self, key: str) -> str | None:
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.redis.setex(key, ttl_seconds, value)

    async def close(self) -> None:
        await self.redis.aclose()
