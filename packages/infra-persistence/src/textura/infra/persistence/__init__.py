"""Textura Infra Persistence -- SQLAlchemy engine management and Redis client."""

from textura.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    get_database_manager,
)
from textura.infra.persistence.lifespan import lifespan_contribution
from textura.infra.persistence.redis_client import RedisFactory, get_redis_factory
from textura.infra.persistence.redis_settings import RedisSettings

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "RedisFactory",
    "RedisSettings",
    "get_database_manager",
    "get_redis_factory",
    "lifespan_contribution",
]
