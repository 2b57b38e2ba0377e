"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from fluxkit.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.ttl_ms
    60000
    >>> settings.http.prefix
    '/api'

    # Or with environment variables:
    # FLUX_CACHE_TTL_MS=30000
    # FLUX_HTTP_PORT=8080
    # FLUX_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeInt, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Defaults for the cache modifier."""

    model_config = SettingsConfigDict(env_prefix="FLUX_CACHE_", extra="ignore")

    ttl_ms: PositiveInt = Field(default=60_000, description="Entry lifetime in milliseconds")
    max_entries: PositiveInt = Field(default=100, description="Entries kept per tool before FIFO eviction")


class RateLimitSettings(BaseSettings):
    """Defaults for the rate limit modifier."""

    model_config = SettingsConfigDict(env_prefix="FLUX_RATELIMIT_", extra="ignore")

    requests: PositiveInt = Field(default=60, description="Bucket capacity")
    window: int | str = Field(default="1m", description="Refill window, ms or '30s'/'1m'/'1h'")
    key: Literal["global", "method"] = "method"


class RetrySettings(BaseSettings):
    """Defaults for the retry modifier."""

    model_config = SettingsConfigDict(env_prefix="FLUX_RETRY_", extra="ignore")

    attempts: Annotated[int, Field(ge=1, le=20)] = 3
    backoff: Literal["fixed", "linear", "exponential"] = "exponential"
    delay_ms: NonNegativeInt = Field(default=1000, description="Base delay in milliseconds")
    max_delay_ms: NonNegativeInt = Field(default=30_000, description="Delay cap in milliseconds")


class HttpSettings(BaseSettings):
    """HTTP transport configuration."""

    model_config = SettingsConfigDict(env_prefix="FLUX_HTTP_", extra="ignore")

    host: str = "127.0.0.1"
    port: PositiveInt = 3000
    prefix: str = "/api"
    cors: bool = True

    @field_validator("prefix", mode="before")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        """Leading slash, no trailing slash ('' stays '')."""
        if not isinstance(v, str):
            return v
        v = v.strip().rstrip("/")
        return f"/{v.lstrip('/')}" if v else ""


class SocketSettings(BaseSettings):
    """WebSocket transport configuration."""

    model_config = SettingsConfigDict(env_prefix="FLUX_SOCKET_", extra="ignore")

    host: str = "127.0.0.1"
    port: PositiveInt = 3001
    path: str = "/ws"
    request_timeout: PositiveFloat = Field(default=30.0, description="Caller-side timeout in seconds")
    max_reconnect_attempts: NonNegativeInt = 5


class StreamSettings(BaseSettings):
    """Line-oriented stdio transport configuration."""

    model_config = SettingsConfigDict(env_prefix="FLUX_STREAM_", extra="ignore")

    protocol_version: str = "2024-11-05"
    server_name: str = "flux-server"
    server_version: str = "0.1.0"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="FLUX_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class FluxSettings(BaseSettings):
    """Root settings.

    Loads configuration from environment variables with the FLUX_ prefix.

    Example environment variables:
        FLUX_DEBUG=true
        FLUX_CACHE_TTL_MS=30000
        FLUX_RETRY_BACKOFF=linear
        FLUX_SOCKET_PATH=/rpc
        FLUX_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="FLUX_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Include tracebacks in logs")

    cache: CacheSettings = Field(default_factory=CacheSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    socket: SocketSettings = Field(default_factory=SocketSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> FluxSettings:
    """Get the global settings instance (cached)."""
    return FluxSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    The next get_settings() call reloads configuration from the environment.
    """
    get_settings.cache_clear()
