"""FastAPI application factory."""

from fastapi import FastAPI

from cratedigger.api.dependencies import AppContainer
from cratedigger.api.exception_handlers import register_exception_handlers
from cratedigger.api.routers import api_router
from cratedigger.config import Settings, get_settings
from cratedigger.infrastructure.lifecycle import lifespan
from cratedigger.infrastructure.observability.middleware import RequestLoggingMiddleware

API_PREFIX = "/api"


def create_app(settings: Settings | None = None, container: AppContainer | None = None) -> FastAPI:
    """Build the app.

    Args:
        settings: Defaults to get_settings() (environment)
        container: Pre-built container (tests); otherwise built at startup
    """
    settings = settings or (container.settings if container else get_settings())

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    if container is not None:
        app.state.container = container

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
