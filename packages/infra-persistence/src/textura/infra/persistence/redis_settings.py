"""Redis configuration using Pydantic settings."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Configuration for the Redis connection used by the message bus.

    Environment Variables:
        REDIS_URL: Full connection URL; takes precedence when set.
        REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD: Individual fields.
        REDIS_POOL_SIZE: Maximum connections in pool (default: 10).
        REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5.0). Must
            exceed the subscriber's blocking read interval.

    Example:
        >>> RedisSettings(redis_host="cache", redis_port=6380).get_url()
        'redis://cache:6380/0'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str | None = Field(default=None, description="Full Redis URL")
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_db: int = Field(default=0, ge=0, le=15)
    redis_password: str | None = Field(default=None, repr=False)
    redis_pool_size: int = Field(default=10, ge=1, le=100)
    redis_socket_timeout: float = Field(default=10.0, ge=0.1)
    redis_socket_connect_timeout: float = Field(default=5.0, ge=0.1)

    @classmethod
    def from_url(cls, url: str) -> RedisSettings:
        """Create settings from a ``redis://`` or ``rediss://`` URL.

        Raises:
            ValueError: If the scheme or database number is invalid.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("redis", "rediss"):
            msg = f"Invalid Redis URL scheme: {parsed.scheme}"
            raise ValueError(msg)

        db = 0
        if parsed.path and parsed.path != "/":
            try:
                db = int(parsed.path.lstrip("/"))
            except ValueError:
                msg = f"Invalid database number in URL path: {parsed.path}"
                raise ValueError(msg) from None

        return cls(
            redis_url=url,
            redis_host=parsed.hostname or "localhost",
            redis_port=parsed.port or 6379,
            redis_db=db,
            redis_password=parsed.password,
        )

    def get_url(self) -> str:
        if self.redis_url:
            return self.redis_url
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"
