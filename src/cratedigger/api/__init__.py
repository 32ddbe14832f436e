"""HTTP API for cratedigger.

Hey future me - create_app() in app.py is the entry point. routers/ holds the endpoints
(mounted under /api), schemas/ the request/response models, dependencies.py the wiring
(AppContainer) and exception_handlers.py the domain error → HTTP status mapping.
"""

from cratedigger.api.app import create_app
from cratedigger.api.routers import api_router

__all__ = ["api_router", "create_app"]
