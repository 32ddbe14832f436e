"""Dependency injection for API endpoints."""

import logging
from dataclasses import dataclass
from typing import cast

import httpx
from fastapi import Depends, Header, HTTPException, Request

from cratedigger.application.services import (
    LabelIngestionService,
    LabelService,
    MatchCascade,
    PlaybackService,
    WeakMatchEscalator,
)
from cratedigger.application.workers import IngestionWorker
from cratedigger.config import Settings
from cratedigger.domain.ports import IStorefrontLinkFinder, NullStorefrontLinkFinder
from cratedigger.infrastructure.integrations import (
    ApiGateway,
    BandcampStorefrontScraper,
    DiscogsAuth,
    DiscogsClient,
    ProviderPolicy,
    YouTubeClient,
    classify_discogs_error,
    classify_youtube_error,
)
from cratedigger.infrastructure.persistence import Database, DatabaseResponseCache

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 30.0


@dataclass
class AppContainer:
    """Everything the routes need, built once per process."""

    settings: Settings
    database: Database
    http_clients: list[httpx.AsyncClient]
    discogs_gateway: ApiGateway
    youtube_gateway: ApiGateway
    discogs: DiscogsClient
    youtube: YouTubeClient
    cascade: MatchCascade
    ingestion: LabelIngestionService
    playback: PlaybackService
    labels: LabelService
    worker: IngestionWorker

    async def close(self) -> None:
        await self.worker.stop()
        for client in self.http_clients:
            await client.aclose()
        await self.database.close()


# Hey future me - this is THE place where gateways get built. Exactly ONE gateway per
# provider per process, because the serial queue lives on the gateway instance. Build a
# second DiscogsClient with its own gateway somewhere else and the 1.2s spacing is gone.
def build_container(
    settings: Settings,
    database: Database | None = None,
    link_finder: IStorefrontLinkFinder | None = None,
) -> AppContainer:
    """Wire clients, gateways, services and the worker from settings."""
    database = database or Database(settings)
    cache = DatabaseResponseCache(database)

    discogs_http = httpx.AsyncClient(
        base_url=settings.discogs.api_base_url,
        headers={"User-Agent": settings.discogs.user_agent, "Accept": "application/json"},
        timeout=HTTP_TIMEOUT_SECONDS,
    )
    youtube_http = httpx.AsyncClient(
        base_url=settings.youtube.api_base_url, timeout=HTTP_TIMEOUT_SECONDS
    )
    storefront_http = httpx.AsyncClient(timeout=settings.storefront.timeout_seconds)

    discogs_gateway = ApiGateway(
        ProviderPolicy.for_discogs(settings.discogs),
        discogs_http,
        cache,
        classify=classify_discogs_error,
    )
    youtube_gateway = ApiGateway(
        ProviderPolicy.for_youtube(settings.youtube),
        youtube_http,
        cache,
        classify=classify_youtube_error,
    )

    discogs = DiscogsClient(
        discogs_gateway,
        DiscogsAuth(settings.discogs.token) if settings.discogs.token else None,
        settings.discogs,
    )
    youtube = YouTubeClient(youtube_gateway, settings.youtube.api_key, settings.youtube)
    cascade = MatchCascade(
        settings.crawl,
        link_finder or NullStorefrontLinkFinder(),
        BandcampStorefrontScraper(storefront_http, settings.storefront),
        youtube,
    )
    escalator = WeakMatchEscalator(database, discogs, cascade, settings.crawl)
    ingestion = LabelIngestionService(database, discogs, cascade, escalator, settings)

    return AppContainer(
        settings=settings,
        database=database,
        http_clients=[discogs_http, youtube_http, storefront_http],
        discogs_gateway=discogs_gateway,
        youtube_gateway=youtube_gateway,
        discogs=discogs,
        youtube=youtube,
        cascade=cascade,
        ingestion=ingestion,
        playback=PlaybackService(database, discogs, cascade, settings.crawl),
        labels=LabelService(database, discogs),
        worker=IngestionWorker(database, ingestion, settings.crawl),
    )


def get_container(request: Request) -> AppContainer:
    """Get the app container from app state.

    Raises:
        HTTPException: 503 if the app hasn't finished starting
    """
    if not hasattr(request.app.state, "container"):
        raise HTTPException(status_code=503, detail="Application not initialized")
    return cast(AppContainer, request.app.state.container)


# Authentication is somebody else's job - whoever sits in front of us tells us the tenant.
def get_user_id(x_user_id: str = Header(..., min_length=1, max_length=128)) -> str:
    """Acting tenant from the X-User-Id header."""
    return x_user_id.strip()


def get_playback_service(container: AppContainer = Depends(get_container)) -> PlaybackService:
    return container.playback


def get_label_service(container: AppContainer = Depends(get_container)) -> LabelService:
    return container.labels


def get_ingestion_worker(container: AppContainer = Depends(get_container)) -> IngestionWorker:
    return container.worker
