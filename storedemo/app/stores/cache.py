"""
Redis cache layer — string key/value store over redis.asyncio.

Provides:
    • One lazily created client per process
    • A single reconnect policy (`reconnecting`) applied to every operation:
      a client is (re)built before the call if none is live, and a client
      whose connection failed is dropped so the next call starts fresh
    • SDK errors surfaced as BackingStoreError

Usage:
    cache = CacheStore.from_settings(settings)
    await cache.set("greeting", "hello")
    await cache.get("greeting")
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from storedemo.app.core.config import Settings
from storedemo.app.core.errors import BackingStoreError

logger = logging.getLogger(__name__)


def reconnecting(operation: str) -> Callable:
    """
    Decorator: hand the wrapped method a live client and translate errors.

    The method receives the client as its first argument after self.
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(self: "CacheStore", *args, **kwargs):
            client = self._ensure_client()
            try:
                return await func(self, client, *args, **kwargs)
            except RedisConnectionError as e:
                await self._drop_client()
                raise BackingStoreError("redis", operation, str(e)) from e
            except RedisError as e:
                raise BackingStoreError("redis", operation, str(e)) from e
        return wrapper
    return decorator


# Connection options shared by URL and host/port configuration
CLIENT_OPTIONS: Dict[str, Any] = {
    "decode_responses": True,
    "encoding": "utf-8",
    "socket_connect_timeout": 5.0,
    "socket_timeout": 5.0,
}


class CacheStore:
    """String key/value access with a lazily established connection."""

    def __init__(self, factory: Callable[[], aioredis.Redis]):
        self._factory = factory
        self._client: Optional[aioredis.Redis] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "CacheStore":
        def factory() -> aioredis.Redis:
            if config.REDIS_URL:
                return aioredis.from_url(config.REDIS_URL, **CLIENT_OPTIONS)
            return aioredis.Redis(
                host=config.REDIS_HOST,
                port=config.REDIS_PORT,
                username=config.REDIS_USERNAME,
                password=config.REDIS_PASS,
                ssl=config.REDIS_TLS,
                **CLIENT_OPTIONS,
            )
        return cls(factory)

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _ensure_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = self._factory()
            logger.info("Redis client created")
        return self._client

    async def _drop_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            try:
                await client.aclose()
            except RedisError as e:
                logger.debug("Ignoring error closing broken Redis client: %s", e)

    async def ping(self) -> bool:
        """PING. Never raises."""
        try:
            return bool(await self._ping())
        except Exception as e:
            logger.debug("Redis ping failed: %s", e)
            return False

    @reconnecting("ping")
    async def _ping(self, client: aioredis.Redis) -> bool:
        return await client.ping()

    @reconnecting("set")
    async def set(self, client: aioredis.Redis, key: str, value: str) -> None:
        await client.set(key, value)

    @reconnecting("get")
    async def get(self, client: aioredis.Redis, key: str) -> Optional[str]:
        return await client.get(key)

    @reconnecting("delete")
    async def delete(self, client: aioredis.Redis, key: str) -> bool:
        """True when the key existed."""
        return (await client.delete(key)) > 0

    async def close(self) -> None:
        """Close the connection; a later operation will reconnect."""
        if self._client is not None:
            await self._drop_client()
            logger.info("Redis connection closed")
