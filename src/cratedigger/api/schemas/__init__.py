"""Pydantic request/response models of the HTTP API."""

from .labels import (
    AddLabelRequest,
    LabelResponse,
    SetActiveRequest,
    WantlistSyncResponse,
    WishlistToggleResponse,
)
from .playback import (
    ChooseMatchRequest,
    ChooseMatchResponse,
    EnqueueRequest,
    EnqueueResponse,
    NextItemRequest,
    ProcessLabelRequest,
    QueueItemResponse,
    StepResponse,
    TrackFlagResponse,
)

__all__ = [
    "AddLabelRequest",
    "ChooseMatchRequest",
    "ChooseMatchResponse",
    "EnqueueRequest",
    "EnqueueResponse",
    "LabelResponse",
    "NextItemRequest",
    "ProcessLabelRequest",
    "QueueItemResponse",
    "SetActiveRequest",
    "StepResponse",
    "TrackFlagResponse",
    "WantlistSyncResponse",
    "WishlistToggleResponse",
]
