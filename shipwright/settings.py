"""Configuration loaded from SHIPWRIGHT_* environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShipwrightSettings(BaseSettings):
    """Shipwright settings.

    All fields are read from environment variables with the ``SHIPWRIGHT_``
    prefix.  For example, ``SHIPWRIGHT_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The standard ``DOCKER_HOST`` / ``DOCKER_TLS_VERIFY`` / ``DOCKER_CERT_PATH``
    variables are **not** managed here -- they are read by the docker SDK
    itself whenever ``docker_host`` is left unset.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHIPWRIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Engine ----------------------------------------------------------------
    docker_host: str | None = None
    """Engine endpoint, e.g. ``unix:///var/run/docker.sock``.  Unset means environment defaults."""

    docker_api_version: str | None = None
    """Pin the Engine API version.  Unset lets the SDK negotiate it."""

    docker_timeout: int = Field(default=60, gt=0)
    """Per-request HTTP timeout in seconds.  Container waits are never bounded by it."""

    # -- Relay -----------------------------------------------------------------
    relay_capacity: int = Field(default=32, gt=0)

    # -- Run lifecycle ---------------------------------------------------------
    cleanup_on_error: bool = True
    """Force-remove the container when start, wait or log capture fails.

    When false, a container is only removed if the run reaches its final
    stage, so early failures leave it behind.
    """


def get_settings() -> ShipwrightSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> ShipwrightSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return ShipwrightSettings()


from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
