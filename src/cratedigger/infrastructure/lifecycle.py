"""Application lifecycle: startup and shutdown for the FastAPI app."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from cratedigger.config import Settings
from cratedigger.domain.exceptions import ConfigurationError
from cratedigger.infrastructure.observability import configure_logging

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite+aiosqlite:///"


def _ensure_sqlite_directory(settings: Settings) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = settings.database.url
    if not url.startswith(SQLITE_PREFIX) or ":memory:" in url:
        return
    parent = Path(url.removeprefix(SQLITE_PREFIX)).parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{parent}': {exc}. "
            "Update CRATEDIGGER_DATABASE__URL or adjust directory permissions."
        ) from exc


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# The container is built (or injected by tests) in create_app(); here we only bring it up
# and tear it down. The background loop only starts when a tenant is configured - without
# one, crawling is driven by POST /api/worker/process.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup: logging, SQLite directory, tables, optional background worker.
    Shutdown: worker, HTTP clients and database engine.
    """
    from cratedigger.api.dependencies import AppContainer, build_container

    settings: Settings = app.state.settings
    configure_logging(
        log_level=settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    container: AppContainer | None = getattr(app.state, "container", None)
    if container is None:
        _ensure_sqlite_directory(settings)
        container = build_container(settings)
        app.state.container = container

    try:
        await container.database.create_tables()
        logger.info("Database initialized: %s", settings.database.url)

        if settings.crawl.background_user_id:
            await container.worker.start(settings.crawl.background_user_id)

        yield
    finally:
        logger.info("Shutting down application")
        await container.close()
