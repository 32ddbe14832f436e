"""API schemas for the worker, queue and match endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from cratedigger.domain.entities import PlaybackMode, QueueItem


class ProcessLabelRequest(BaseModel):
    """Request schema for running one ingestion step."""

    label_id: int = Field(..., gt=0, description="Stored label id")


class StepResponse(BaseModel):
    """Result of one ingestion step."""

    done: bool
    message: str
    outcome: str


class QueueItemResponse(BaseModel):
    """Schema for a playback queue entry."""

    id: int | None
    video_id: str
    track_id: int | None
    release_id: int | None
    label_id: int | None
    source: str
    priority: int
    status: str
    bumped_at: datetime | None
    added_at: datetime

    @classmethod
    def from_entity(cls, item: QueueItem) -> "QueueItemResponse":
        return cls(
            id=item.id,
            video_id=item.video_id,
            track_id=item.track_id,
            release_id=item.release_id,
            label_id=item.label_id,
            source=item.source.value,
            priority=item.priority,
            status=item.status.value,
            bumped_at=item.bumped_at,
            added_at=item.added_at,
        )


class EnqueueRequest(BaseModel):
    """Request schema for queueing a track on demand."""

    track_id: int = Field(..., gt=0)
    match_id: int | None = Field(default=None, gt=0, description="Use this stored match")
    queue_mode: Literal["normal", "next"] = Field(
        default="normal", description='"next" puts the track at the front of the queue'
    )


class EnqueueResponse(BaseModel):
    ok: bool
    item: QueueItemResponse | None = None
    reason: str | None = None
    error: str | None = None


class ChooseMatchRequest(BaseModel):
    """Request schema for picking a track's video match."""

    track_id: int = Field(..., gt=0)
    match_id: int = Field(..., gt=0)


class ChooseMatchResponse(BaseModel):
    ok: bool = True
    queued: QueueItemResponse | None = Field(
        default=None, description="Item inserted when the track wasn't queued yet"
    )


class NextItemRequest(BaseModel):
    """Request schema for advancing the player."""

    current_id: int | None = Field(default=None, gt=0, description="Queue item that just ended")
    action: Literal["next", "played", "listened"] | None = None
    mode: PlaybackMode = PlaybackMode.HYBRID


class TrackFlagResponse(BaseModel):
    track_id: int
    value: bool
