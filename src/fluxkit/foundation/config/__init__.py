"""Configuration management using pydantic-settings."""

from .settings import (
    CacheSettings,
    FluxSettings,
    HttpSettings,
    LoggingSettings,
    RateLimitSettings,
    RetrySettings,
    SocketSettings,
    StreamSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "FluxSettings",
    "HttpSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "RetrySettings",
    "SocketSettings",
    "StreamSettings",
    "clear_settings_cache",
    "get_settings",
]
