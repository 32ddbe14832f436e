"""Playback queue, match and track flag endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cratedigger.api.dependencies import get_playback_service, get_user_id
from cratedigger.api.schemas import (
    ChooseMatchRequest,
    ChooseMatchResponse,
    EnqueueRequest,
    EnqueueResponse,
    NextItemRequest,
    QueueItemResponse,
    TrackFlagResponse,
)
from cratedigger.application.services import EnqueueReason, EnqueueRejection, PlaybackService

router = APIRouter(tags=["queue"])

# Rejections are results, not errors; quota and "nothing found" are a normal 200 so the
# player can just grey out the button
REJECTION_STATUS: dict[EnqueueReason, int] = {
    EnqueueReason.TRACK_NOT_FOUND: 404,
    EnqueueReason.MATCH_NOT_FOUND: 404,
    EnqueueReason.LABEL_INACTIVE: 409,
    EnqueueReason.NO_MATCH: 200,
    EnqueueReason.QUOTA_EXCEEDED: 200,
    EnqueueReason.PROVIDER_ERROR: 502,
}


@router.post("/queue/enqueue", response_model=EnqueueResponse)
async def enqueue_track(
    payload: EnqueueRequest,
    user_id: str = Depends(get_user_id),
    playback: PlaybackService = Depends(get_playback_service),
) -> EnqueueResponse | JSONResponse:
    """Queue a track, searching for a video on the spot if it has none."""
    result = await playback.enqueue_track_on_demand(
        user_id,
        payload.track_id,
        match_id=payload.match_id,
        queue_next=payload.queue_mode == "next",
    )
    if isinstance(result, EnqueueRejection):
        body = EnqueueResponse(ok=False, reason=result.reason.value, error=result.message)
        return JSONResponse(
            status_code=REJECTION_STATUS[result.reason], content=body.model_dump(mode="json")
        )
    return EnqueueResponse(ok=True, item=QueueItemResponse.from_entity(result))


@router.post("/queue/next", response_model=QueueItemResponse | None)
async def next_item(
    payload: NextItemRequest,
    user_id: str = Depends(get_user_id),
    playback: PlaybackService = Depends(get_playback_service),
) -> QueueItemResponse | None:
    """Finish the current item (played or listened) and return the next one."""
    finished = payload.current_id if payload.action in ("played", "listened") else None
    item = await playback.next_item(
        user_id,
        current_id=finished,
        mode=payload.mode,
        listened=payload.action == "listened",
    )
    return QueueItemResponse.from_entity(item) if item else None


@router.post("/matches/choose", response_model=ChooseMatchResponse)
async def choose_match(
    payload: ChooseMatchRequest,
    user_id: str = Depends(get_user_id),
    playback: PlaybackService = Depends(get_playback_service),
) -> ChooseMatchResponse:
    queued = await playback.choose_match(user_id, payload.track_id, payload.match_id)
    return ChooseMatchResponse(queued=QueueItemResponse.from_entity(queued) if queued else None)


@router.post("/tracks/{track_id}/listened", response_model=TrackFlagResponse)
async def toggle_listened(
    track_id: int,
    user_id: str = Depends(get_user_id),
    playback: PlaybackService = Depends(get_playback_service),
) -> TrackFlagResponse:
    value = await playback.toggle_listened(user_id, track_id)
    return TrackFlagResponse(track_id=track_id, value=value)


@router.post("/tracks/{track_id}/saved", response_model=TrackFlagResponse)
async def toggle_saved(
    track_id: int,
    user_id: str = Depends(get_user_id),
    playback: PlaybackService = Depends(get_playback_service),
) -> TrackFlagResponse:
    value = await playback.toggle_saved(user_id, track_id)
    return TrackFlagResponse(track_id=track_id, value=value)
