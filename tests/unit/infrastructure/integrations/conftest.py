"""Fixtures for provider client tests."""

from collections.abc import AsyncGenerator

import httpx
import pytest

from cratedigger.application.cache import InMemoryResponseCache
from cratedigger.config import DiscogsSettings, YouTubeSettings
from cratedigger.infrastructure.integrations import (
    ApiGateway,
    DiscogsAuth,
    DiscogsClient,
    ProviderPolicy,
    YouTubeClient,
    classify_discogs_error,
    classify_youtube_error,
)

DISCOGS_BASE = "https://api.discogs.test"
YOUTUBE_BASE = "https://youtube.test/v3"


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
async def discogs_client() -> AsyncGenerator[DiscogsClient, None]:
    settings = DiscogsSettings(api_base_url=DISCOGS_BASE, token="tok-123456789")
    async with httpx.AsyncClient(base_url=DISCOGS_BASE) as http:
        gateway = ApiGateway(
            ProviderPolicy.for_discogs(settings),
            http,
            InMemoryResponseCache(),
            classify=classify_discogs_error,
            clock=lambda: 0.0,
            sleep=_no_sleep,
        )
        yield DiscogsClient(gateway, DiscogsAuth(settings.token or ""), settings)


@pytest.fixture
async def youtube_client() -> AsyncGenerator[YouTubeClient, None]:
    settings = YouTubeSettings(api_base_url=YOUTUBE_BASE, api_key="yt-key-abcdefgh")
    async with httpx.AsyncClient(base_url=YOUTUBE_BASE) as http:
        gateway = ApiGateway(
            ProviderPolicy.for_youtube(settings),
            http,
            InMemoryResponseCache(),
            classify=classify_youtube_error,
            clock=lambda: 0.0,
            sleep=_no_sleep,
        )
        yield YouTubeClient(gateway, settings.api_key, settings)
