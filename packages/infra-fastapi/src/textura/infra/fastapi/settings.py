"""Settings consumed by :func:`textura.infra.fastapi.create_app`.

``APP_*`` variables shape the FastAPI instance, ``CORS_*`` variables the
CORS middleware. List-valued CORS variables are plain comma lists::

    CORS_ALLOW_ORIGINS=https://erp.example.com,https://ops.example.com
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

from pydantic import BeforeValidator, Field, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_commas(value: object) -> object:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


# Comma list from the environment, or a regular list from code
CommaList = Annotated[list[str], NoDecode, BeforeValidator(_split_commas)]


class CORSSettings(BaseSettings):
    """Cross-origin policy. Defaults allow any origin without credentials."""

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: CommaList = Field(default_factory=lambda: ["*"])
    allow_methods: CommaList = Field(default_factory=lambda: ["*"])
    allow_headers: CommaList = Field(default_factory=lambda: ["*"])
    expose_headers: CommaList = Field(default_factory=lambda: ["X-Correlation-ID"])
    allow_credentials: bool = False

    @model_validator(mode="after")
    def _no_credentials_for_any_origin(self) -> CORSSettings:
        if self.allow_credentials and "*" in self.allow_origins:
            msg = (
                "CORS allow_credentials requires explicit origins; "
                "browsers reject credentialed responses for '*'"
            )
            raise ValueError(msg)
        return self


def _installed_version() -> str:
    try:
        return version("textura")
    except PackageNotFoundError:
        return "0.0.0"


class AppSettings(BaseSettings):
    """FastAPI instance settings (``APP_`` prefix).

    Setting ``docs_url``, ``redoc_url`` or ``openapi_url`` to ``None``
    disables that endpoint.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    title: str = "Textura Fabrics"
    description: str = "Fabric command and event service"
    version: str = Field(default_factory=_installed_version)
    debug: bool = False
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"
    openapi_url: str | None = "/openapi.json"
    cors: CORSSettings = Field(default_factory=CORSSettings)
