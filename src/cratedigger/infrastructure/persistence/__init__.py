"""Persistence layer: SQLAlchemy models, repositories and the database cache."""

from .api_cache import DatabaseResponseCache
from .database import Database
from .repositories import (
    LabelRepository,
    QueueItemRepository,
    ReleaseRepository,
    ReleaseSignalsRepository,
    TrackRepository,
    VideoMatchRepository,
)

__all__ = [
    "Database",
    "DatabaseResponseCache",
    "LabelRepository",
    "QueueItemRepository",
    "ReleaseRepository",
    "ReleaseSignalsRepository",
    "TrackRepository",
    "VideoMatchRepository",
]
