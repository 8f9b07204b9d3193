"""Unit tests for textura.infra.persistence.redis_settings."""

from __future__ import annotations

import pytest

from textura.infra.persistence.redis_settings import RedisSettings


@pytest.mark.unit
class TestRedisSettings:
    def test_get_url_from_fields(self) -> None:
        settings = RedisSettings(redis_host="cache", redis_port=6380, redis_db=2)
        assert settings.get_url() == "redis://cache:6380/2"

    def test_get_url_with_password(self) -> None:
        settings = RedisSettings(redis_host="cache", redis_password="pw")
        assert settings.get_url() == "redis://:pw@cache:6379/0"

    def test_from_url(self) -> None:
        settings = RedisSettings.from_url("redis://:pw@myhost:6380/1")
        assert settings.redis_host == "myhost"
        assert settings.redis_port == 6380
        assert settings.redis_db == 1
        assert settings.redis_password == "pw"
        assert settings.get_url() == "redis://:pw@myhost:6380/1"

    def test_from_url_rejects_scheme(self) -> None:
        with pytest.raises(ValueError, match="Invalid Redis URL scheme"):
            RedisSettings.from_url("http://localhost:6379/0")

    def test_from_url_rejects_bad_db(self) -> None:
        with pytest.raises(ValueError, match="Invalid database number"):
            RedisSettings.from_url("redis://localhost:6379/abc")

    def test_port_bounds(self) -> None:
        with pytest.raises(ValueError):
            RedisSettings(redis_port=70000)
