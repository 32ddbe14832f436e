"""Service-level fixtures: real database and cascade, mocked providers."""

from unittest.mock import AsyncMock

import pytest

from cratedigger.application.services import (
    LabelIngestionService,
    LabelService,
    MatchCascade,
    PlaybackService,
    WeakMatchEscalator,
)
from cratedigger.config import Settings
from cratedigger.domain.dtos import LabelProfile, LabelReleasePage, ReleaseDetail
from cratedigger.domain.ports import IStorefrontScraper, NullStorefrontLinkFinder
from cratedigger.infrastructure.integrations import DiscogsClient, YouTubeClient
from cratedigger.infrastructure.persistence import Database


@pytest.fixture
def discogs() -> AsyncMock:
    client = AsyncMock(spec=DiscogsClient)
    client.fetch_release.return_value = ReleaseDetail(id=1, title="EP")
    client.fetch_label_releases.return_value = LabelReleasePage(releases=[], page=1, pages=1)
    client.fetch_label_profile.return_value = LabelProfile()
    return client


@pytest.fixture
def youtube() -> AsyncMock:
    client = AsyncMock(spec=YouTubeClient)
    client.search.return_value = []
    return client


@pytest.fixture
def scraper() -> AsyncMock:
    mock = AsyncMock(spec=IStorefrontScraper)
    mock.scrape_track_videos.return_value = []
    return mock


@pytest.fixture
def cascade(settings: Settings, scraper: AsyncMock, youtube: AsyncMock) -> MatchCascade:
    return MatchCascade(settings.crawl, NullStorefrontLinkFinder(), scraper, youtube)


@pytest.fixture
def escalator(
    database: Database, discogs: AsyncMock, cascade: MatchCascade, settings: Settings
) -> WeakMatchEscalator:
    return WeakMatchEscalator(database, discogs, cascade, settings.crawl)


@pytest.fixture
def ingestion(
    database: Database,
    discogs: AsyncMock,
    cascade: MatchCascade,
    escalator: WeakMatchEscalator,
    settings: Settings,
) -> LabelIngestionService:
    return LabelIngestionService(database, discogs, cascade, escalator, settings)


@pytest.fixture
def playback(
    database: Database, discogs: AsyncMock, cascade: MatchCascade, settings: Settings
) -> PlaybackService:
    return PlaybackService(database, discogs, cascade, settings.crawl)


@pytest.fixture
def label_service(database: Database, discogs: AsyncMock) -> LabelService:
    return LabelService(database, discogs)
