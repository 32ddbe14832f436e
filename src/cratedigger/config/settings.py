"""Application settings using pydantic-settings.

Hey future me - every knob of the crawler lives here. Settings are nested per concern
(settings.database.url, settings.youtube.min_call_gap_seconds, ...) and are read from
the environment with the CRATEDIGGER_ prefix and "__" as nested delimiter, e.g.

    CRATEDIGGER_DISCOGS__TOKEN=abc
    CRATEDIGGER_YOUTUBE__API_KEY=xyz
    CRATEDIGGER_CRAWL__SEARCH_UNMATCHED_TRACKS=true

Nothing here validates that credentials exist - a missing key only fails when a client
actually needs it (ConfigurationError at point of use).
"""

from functools import cache
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Annotated[
    Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    BeforeValidator(lambda v: v.upper() if isinstance(v, str) else v),
]

HOUR = 60 * 60
DAY = 24 * HOUR


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./cratedigger.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=-1)


class DiscogsSettings(BaseModel):
    """Catalog provider (Discogs) settings.

    Discogs allows ~60 authenticated requests per minute. We stay under that with a
    fixed 1.2s gap between calls instead of bursting.
    """

    api_base_url: str = Field(default="https://api.discogs.com")
    token: str | None = Field(default=None, description="Personal access token")
    user_agent: str = Field(default="cratedigger/0.1 +https://github.com/cratedigger")
    min_call_gap_seconds: float = Field(default=1.2, ge=0)
    max_retries: int = Field(default=4, ge=1)
    backoff_base_seconds: float = Field(default=1.25, ge=0)
    page_size: int = Field(default=100, ge=1, le=100)
    label_releases_ttl: int = Field(default=6 * HOUR, ge=0)
    release_ttl: int = Field(default=14 * DAY, ge=0)
    label_profile_ttl: int = Field(default=14 * DAY, ge=0)
    identity_ttl: int = Field(default=DAY, ge=0)
    search_ttl: int = Field(default=6 * HOUR, ge=0)
    fatal_block_ttl: int = Field(default=DAY, ge=0)


class YouTubeSettings(BaseModel):
    """Video provider (YouTube Data API v3) settings.

    A search.list call costs 100 quota units, so the default daily quota of 10k units
    buys ~100 searches. That's why results are cached for days and why quota errors
    block the key for hours instead of being retried.
    """

    api_base_url: str = Field(default="https://www.googleapis.com/youtube/v3")
    api_key: str | None = Field(default=None)
    min_call_gap_seconds: float = Field(default=0.8, ge=0)
    max_retries: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=0.6, ge=0)
    max_results: int = Field(default=5, ge=1, le=50)
    search_ttl: int = Field(default=3 * DAY, ge=0)
    quota_block_ttl: int = Field(default=8 * HOUR, ge=0)
    fatal_block_ttl: int = Field(default=DAY, ge=0)
    transient_block_ttl: int = Field(default=15 * 60, ge=0)


class StorefrontSettings(BaseModel):
    """Independent storefront scraping settings."""

    timeout_seconds: float = Field(default=20.0, gt=0)
    user_agent: str = Field(default="Mozilla/5.0 (compatible; cratedigger/0.1)")


class CrawlSettings(BaseModel):
    """Label crawl and match cascade tuning."""

    poll_interval_seconds: float = Field(default=1.6, gt=0)
    weak_ratio: float = Field(default=0.6, gt=0, le=1)
    weak_floor: int = Field(default=2, ge=1)
    catalog_match_threshold: int = Field(default=3)
    storefront_match_threshold: int = Field(default=3)
    storefront_score: float = Field(default=9.0)
    release_video_score: float = Field(default=2.0)
    search_unmatched_tracks: bool = Field(
        default=False,
        description="Run a keyword video search for tracks without seeded matches during ingestion",
    )
    keyword_min_score: int = Field(default=3)
    error_message_limit: int = Field(default=1200, ge=80)
    background_user_id: str | None = Field(
        default=None,
        description="Tenant whose active labels the background worker crawls at startup (None = no loop)",
    )


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: LogLevel = Field(default="INFO")
    log_json_format: bool = Field(default=False)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="CRATEDIGGER_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="cratedigger")
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    discogs: DiscogsSettings = Field(default_factory=DiscogsSettings)
    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)
    storefront: StorefrontSettings = Field(default_factory=StorefrontSettings)
    crawl: CrawlSettings = Field(default_factory=CrawlSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
