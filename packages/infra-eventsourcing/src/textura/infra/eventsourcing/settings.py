"""Eventsourcing library configuration using Pydantic settings.

The event trail is written through an ``eventsourcing`` application
recorder. Which recorder (PostgreSQL, SQLite or in-memory POPO) is chosen by
``PERSISTENCE_MODULE``, exactly as the library itself reads it.
"""

from __future__ import annotations

import os
import warnings
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

POSTGRES_MODULE = "eventsourcing.postgres"
SQLITE_MODULE = "eventsourcing.sqlite"
POPO_MODULE = "eventsourcing.popo"


class EventSourcingSettings(BaseSettings):
    """Configuration for the eventsourcing recorder.

    Environment Variables:
        PERSISTENCE_MODULE: ``eventsourcing.postgres`` (default),
            ``eventsourcing.sqlite`` or ``eventsourcing.popo``.
        POSTGRES_DBNAME / POSTGRES_HOST / POSTGRES_PORT / POSTGRES_USER /
            POSTGRES_PASSWORD: PostgreSQL connection.
        POSTGRES_POOL_SIZE / POSTGRES_MAX_OVERFLOW / POSTGRES_CONNECT_TIMEOUT:
            Connection pooling.
        POSTGRES_SCHEMA: Schema for the ``stored_events`` table.
        SQLITE_DBNAME: SQLite database path (default: ``:memory:``).
        CREATE_TABLE: Create the event table on startup (default: true).

    Example:
        >>> EventSourcingSettings(postgres_dbname="fabrics").to_env_dict()["POSTGRES_DBNAME"]
        'fabrics'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    persistence_module: str = POSTGRES_MODULE

    postgres_dbname: str = Field(default="fabrics")
    postgres_host: str = Field(default="localhost")
    postgres_port: int = Field(default=5432, ge=1, le=65535)
    postgres_user: str = Field(default="postgres")
    postgres_password: str = Field(default="postgres", repr=False)
    postgres_pool_size: int = Field(default=5, ge=1, le=50)
    postgres_max_overflow: int = Field(default=10, ge=0, le=100)
    postgres_connect_timeout: int = Field(default=30, ge=5)
    postgres_schema: str = Field(default="public")

    sqlite_dbname: str = Field(default=":memory:")

    create_table: bool = Field(default=True)

    @field_validator("persistence_module")
    @classmethod
    def validate_module(cls, v: str) -> str:
        if v not in (POSTGRES_MODULE, SQLITE_MODULE, POPO_MODULE):
            msg = f"Unsupported persistence module: {v}"
            raise ValueError(msg)
        return v

    @field_validator("create_table")
    @classmethod
    def warn_create_table_in_production(cls, v: bool) -> bool:
        if v and os.getenv("ENVIRONMENT", "development") == "production":
            warnings.warn(
                "CREATE_TABLE=true in production environment. Consider creating "
                "the event table ahead of deployment.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @classmethod
    def from_database_url(cls, database_url: str, **overrides: Any) -> EventSourcingSettings:
        """Derive recorder settings from a SQLAlchemy-style ``DATABASE_URL``.

        PostgreSQL URLs (any driver suffix) select the PostgreSQL recorder and
        SQLite URLs select the SQLite recorder, so the current-state table and
        the event trail live in the same database.

        Raises:
            ValueError: If the URL cannot be parsed or names another backend.
        """
        try:
            url = make_url(database_url)
        except Exception as exc:
            msg = f"Invalid DATABASE_URL: {exc}"
            raise ValueError(msg) from exc

        backend = url.get_backend_name()
        fields: dict[str, Any]
        if backend == "postgresql":
            fields = {
                "persistence_module": POSTGRES_MODULE,
                "postgres_dbname": url.database or "postgres",
                "postgres_host": url.host or "localhost",
                "postgres_port": url.port or 5432,
                "postgres_user": url.username or "postgres",
                "postgres_password": url.password or "",
            }
        elif backend == "sqlite":
            fields = {
                "persistence_module": SQLITE_MODULE,
                "sqlite_dbname": url.database or ":memory:",
            }
        else:
            msg = f"Unsupported DATABASE_URL backend: {backend}"
            raise ValueError(msg)
        return cls(**{**fields, **overrides})

    def to_env_dict(self) -> dict[str, str]:
        """Environment mapping for ``InfrastructureFactory.construct``."""
        env = {
            "PERSISTENCE_MODULE": self.persistence_module,
            "CREATE_TABLE": "y" if self.create_table else "n",
        }
        if self.persistence_module == POSTGRES_MODULE:
            env.update(
                {
                    "POSTGRES_DBNAME": self.postgres_dbname,
                    "POSTGRES_HOST": self.postgres_host,
                    "POSTGRES_PORT": str(self.postgres_port),
                    "POSTGRES_USER": self.postgres_user,
                    "POSTGRES_PASSWORD": self.postgres_password,
                    "POSTGRES_POOL_SIZE": str(self.postgres_pool_size),
                    "POSTGRES_MAX_OVERFLOW": str(self.postgres_max_overflow),
                    "POSTGRES_CONNECT_TIMEOUT": str(self.postgres_connect_timeout),
                    "POSTGRES_SCHEMA": self.postgres_schema,
                }
            )
        elif self.persistence_module == SQLITE_MODULE:
            env["SQLITE_DBNAME"] = self.sqlite_dbname
        return env
