"""API fixtures: the real app, started through its lifespan, against an in-memory DB.

Hey future me - provider HTTP is never mocked at the client level here. Tests that need
Discogs register responses with pytest-httpx (`httpx_mock`); the TestClient's own
transport isn't an httpx.HTTPTransport, so it's left alone.
"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from cratedigger.api import create_app
from cratedigger.config import (
    CrawlSettings,
    DatabaseSettings,
    DiscogsSettings,
    Settings,
    YouTubeSettings,
)

DISCOGS_BASE = "https://api.discogs.test"
USER_HEADERS = {"X-User-Id": "alice"}


def make_settings(discogs_token: str | None = None) -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        discogs=DiscogsSettings(
            api_base_url=DISCOGS_BASE, token=discogs_token, min_call_gap_seconds=0
        ),
        youtube=YouTubeSettings(api_base_url="https://youtube.test/v3", min_call_gap_seconds=0),
        crawl=CrawlSettings(poll_interval_seconds=0.01),
    )


@pytest.fixture
def client() -> Iterator[TestClient]:
    """App without provider credentials: every Discogs call is a ConfigurationError."""
    with TestClient(create_app(make_settings())) as test_client:
        yield test_client


@pytest.fixture
def connected_client() -> Iterator[TestClient]:
    """App with a Discogs token; pair it with httpx_mock."""
    with TestClient(create_app(make_settings(discogs_token="secret-token"))) as test_client:
        yield test_client


@pytest.fixture
def headers() -> dict[str, str]:
    return dict(USER_HEADERS)
