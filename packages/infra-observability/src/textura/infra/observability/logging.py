"""Structured logging configuration using structlog.

One processor chain serves both structlog loggers (``get_logger``) and
stdlib ``logging`` loggers used by infrastructure modules, so every record
leaves the process in the same shape:

- JSON lines in production, colored console output elsewhere
- ``service`` and ``environment`` stamped on every entry
- request and message context bound through ``structlog.contextvars``
- sensitive values redacted before rendering

Usage:
    # During application startup
    from textura.infra.observability.logging import configure_logging
    configure_logging()

    # In application code
    from textura.infra.observability import get_logger
    logger = get_logger(__name__)
    logger.info("fabric_created", code="FAB1", version=1)
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Literal

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

# Keys redacted outright, compared case-insensitively
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {"authorization", "api_key", "apikey", "secret", "credential", "dsn"}
)
# Any key containing one of these is redacted too (db_password, access_token)
_SENSITIVE_FRAGMENTS = ("password", "token")

REDACTED_VALUE: str = "***REDACTED***"


class LoggingSettings(BaseSettings):
    """Logging configuration read from unprefixed environment variables.

    Attributes:
        log_level: ``LOG_LEVEL``, case-insensitive. Default: INFO.
        environment: ``ENVIRONMENT``. ``production`` renders JSON lines.
        service_name: ``SERVICE_NAME``, stamped as ``service`` on each entry.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")
    service_name: str = Field(default="textura-fabrics", alias="SERVICE_NAME")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return logging.getLevelNamesMapping()[self.log_level]


class SensitiveDataProcessor:
    """Replaces the value of every sensitive key with ``REDACTED_VALUE``.

    Example:
        >>> processor = SensitiveDataProcessor()
        >>> processor(None, "info", {"event": "connect", "password": "hunter2"})["password"]
        '***REDACTED***'
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        sensitive = [key for key in event_dict if _is_sensitive(key)]
        for key in sensitive:
            event_dict[key] = REDACTED_VALUE
        return event_dict


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in SENSITIVE_FIELDS or any(part in lowered for part in _SENSITIVE_FRAGMENTS)


class ServiceContextProcessor:
    """Stamps ``service`` and ``environment`` onto every entry."""

    def __init__(self, service_name: str, environment: str) -> None:
        self._service = service_name
        self._environment = environment

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", self._service)
        event_dict.setdefault("environment", self._environment)
        return event_dict


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings instance.

    Clear cache with ``get_logging_settings.cache_clear()`` for testing.
    """
    return LoggingSettings()


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Should be called once during application startup (in a lifespan hook).

    Args:
        settings: Optional LoggingSettings instance. If not provided,
            settings are loaded from environment variables.
    """
    if settings is None:
        settings = get_logging_settings()

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        ServiceContextProcessor(settings.service_name, settings.environment),
        SensitiveDataProcessor(),
    ]

    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level_int)


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger bound to the given name.

    Args:
        name: Logger name (typically ``__name__``).

    Returns:
        A structlog bound logger. Context bound via ``structlog.contextvars``
        (request ids, message ids) is merged into every entry.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("message_routed", subject="erp.fabric")
    """
    return structlog.get_logger(name)
