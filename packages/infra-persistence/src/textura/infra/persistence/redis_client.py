"""Redis client factory for async connection management.

Example:
    >>> from textura.infra.persistence.redis_client import get_redis_factory
    >>> client = await get_redis_factory().get_client()
    >>> await client.ping()
    True
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from textura.infra.persistence.redis_settings import RedisSettings


class RedisFactory:
    """Lazily creates and owns one pooled ``redis.asyncio`` client.

    Usage:
        factory = RedisFactory.from_env()
        client = await factory.get_client()
        await factory.close()
    """

    def __init__(self, settings: RedisSettings) -> None:
        self._settings = settings
        self._client: Any = None

    @classmethod
    def from_env(cls) -> RedisFactory:
        """Create factory from ``REDIS_URL`` or the individual ``REDIS_*`` variables."""
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            return cls.from_url(redis_url)
        return cls(RedisSettings())

    @classmethod
    def from_url(cls, url: str) -> RedisFactory:
        return cls(RedisSettings.from_url(url))

    @property
    def settings(self) -> RedisSettings:
        return self._settings

    async def get_client(self) -> Any:
        """Return the shared client, creating it on first access.

        Responses are decoded to ``str``: stream entries on this bus carry
        UTF-8 JSON only.
        """
        if self._client is None:
            import redis.asyncio as aioredis

            pool = aioredis.ConnectionPool.from_url(
                self._settings.get_url(),
                max_connections=self._settings.redis_pool_size,
                socket_timeout=self._settings.redis_socket_timeout,
                socket_connect_timeout=self._settings.redis_socket_connect_timeout,
                decode_responses=True,
            )
            self._client = aioredis.Redis(connection_pool=pool)
        return self._client

    async def close(self) -> None:
        """Close the client and release pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@lru_cache(maxsize=1)
def get_redis_factory() -> RedisFactory:
    """Get the cached RedisFactory singleton."""
    return RedisFactory.from_env()
