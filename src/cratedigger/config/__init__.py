"""Configuration module for cratedigger."""

from .settings import (
    CrawlSettings,
    DatabaseSettings,
    DiscogsSettings,
    ObservabilitySettings,
    Settings,
    StorefrontSettings,
    YouTubeSettings,
    get_settings,
)

__all__ = [
    "CrawlSettings",
    "DatabaseSettings",
    "DiscogsSettings",
    "ObservabilitySettings",
    "Settings",
    "StorefrontSettings",
    "YouTubeSettings",
    "get_settings",
]
