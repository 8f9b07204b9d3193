"""Fabric context configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FabricSettings(BaseSettings):
    """Configuration for the fabric command pipeline.

    Environment Variables:
        FABRIC_DEFAULT_MEASURE_UNIT: Unit applied when an inbound create omits it.
        FABRIC_DEFAULT_OFFER_STATUS: Offer status applied when an inbound create omits it.
        FABRIC_INBOUND_SUBJECT: Subject carrying ERP fabric events.
        FABRIC_OUTBOUND_SUBJECT: Subject REST-originated envelopes are published to.
        FABRIC_COMMAND_TIMEOUT_SECONDS: Deadline for commands from both
            ingress paths (0 disables it).
    """

    model_config = SettingsConfigDict(
        env_prefix="FABRIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_measure_unit: str = Field(default="MB")
    default_offer_status: str = Field(default="ACTIVE")
    inbound_subject: str = Field(default="erp.fabric", min_length=1)
    outbound_subject: str = Field(default="app.fabric", min_length=1)
    command_timeout_seconds: float = Field(default=30.0, ge=0)


@lru_cache(maxsize=1)
def get_fabric_settings() -> FabricSettings:
    """Get the cached FabricSettings singleton."""
    return FabricSettings()
