"""API router initialization."""

# Hey future me, this is the main API router aggregator. create_app() mounts it under /api,
# so worker.router's "/worker/process" becomes /api/worker/process.

from fastapi import APIRouter

from cratedigger.api.routers import labels, queue, worker

api_router = APIRouter()
api_router.include_router(worker.router)
api_router.include_router(queue.router)
api_router.include_router(labels.router)

__all__ = ["api_router", "labels", "queue", "worker"]
