"""Message bus configuration using Pydantic settings."""

from __future__ import annotations

import os
import socket
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_consumer_name() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class MessagingSettings(BaseSettings):
    """Configuration for the Redis Streams bus.

    Environment Variables:
        MESSAGING_ENABLED: Start the publisher and subscriber (default: true).
            When false, envelopes are kept in memory and nothing is consumed.
        MESSAGING_CONSUMER_GROUP: Consumer group shared across instances.
        MESSAGING_CONSUMER_NAME: This instance's name in the group.
        MESSAGING_BLOCK_MS: Blocking read interval in milliseconds.
        MESSAGING_CLAIM_IDLE_MS: Idle time after which pending entries are reclaimed.
        MESSAGING_CLAIM_INTERVAL_SECONDS: How often to look for reclaimable entries.
        MESSAGING_STREAM_MAX_LENGTH: Approximate cap for published streams
            (0 disables trimming).
    """

    model_config = SettingsConfigDict(
        env_prefix="MESSAGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(default=True)
    consumer_group: str = Field(default="erp-service-group", min_length=1)
    consumer_name: str = Field(default_factory=_default_consumer_name, min_length=1)
    block_ms: int = Field(default=5000, ge=1)
    claim_idle_ms: int = Field(default=60_000, ge=1)
    claim_interval_seconds: float = Field(default=30.0, gt=0)
    stream_max_length: int = Field(default=100_000, ge=0)

    @property
    def max_stream_length(self) -> int | None:
        return self.stream_max_length or None


@lru_cache(maxsize=1)
def get_messaging_settings() -> MessagingSettings:
    """Get the cached MessagingSettings singleton."""
    return MessagingSettings()
