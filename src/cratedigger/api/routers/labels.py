"""Label management endpoints."""

from fastapi import APIRouter, Depends, Response, status

from cratedigger.api.dependencies import get_label_service, get_user_id
from cratedigger.api.schemas import (
    AddLabelRequest,
    LabelResponse,
    SetActiveRequest,
    WantlistSyncResponse,
    WishlistToggleResponse,
)
from cratedigger.application.services import LabelService

router = APIRouter(tags=["labels"])


@router.get("/labels", response_model=list[LabelResponse])
async def list_labels(
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> list[LabelResponse]:
    return [LabelResponse.from_entity(label) for label in await labels.list_labels(user_id)]


@router.post("/labels", response_model=LabelResponse, status_code=status.HTTP_201_CREATED)
async def add_label(
    payload: AddLabelRequest,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> LabelResponse:
    """Add a label by id, URL or name (new labels start inactive)."""
    return LabelResponse.from_entity(await labels.add_label(user_id, payload.label))


@router.post("/labels/{label_id}/active", response_model=LabelResponse)
async def set_label_active(
    label_id: int,
    payload: SetActiveRequest,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> LabelResponse:
    return LabelResponse.from_entity(await labels.set_active(user_id, label_id, payload.active))


@router.post("/labels/{label_id}/pause", response_model=LabelResponse)
async def pause_label(
    label_id: int,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> LabelResponse:
    return LabelResponse.from_entity(await labels.pause(user_id, label_id))


@router.post("/labels/{label_id}/retry", response_model=LabelResponse)
async def retry_label(
    label_id: int,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> LabelResponse:
    """Manual retry: queued again, retry count and last error reset."""
    return LabelResponse.from_entity(await labels.requeue(user_id, label_id))


@router.post("/labels/{label_id}/refresh", response_model=LabelResponse)
async def refresh_label_metadata(
    label_id: int,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> LabelResponse:
    return LabelResponse.from_entity(await labels.refresh_metadata(user_id, label_id))


@router.delete("/labels/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_label(
    label_id: int,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> Response:
    await labels.delete_label(user_id, label_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/releases/{release_id}/wishlist", response_model=WishlistToggleResponse)
async def toggle_release_wishlist(
    release_id: int,
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> WishlistToggleResponse:
    wishlist = await labels.toggle_release_wishlist(user_id, release_id)
    return WishlistToggleResponse(release_id=release_id, wishlist=wishlist)


@router.post("/wantlist/sync", response_model=WantlistSyncResponse)
async def sync_wantlist(
    user_id: str = Depends(get_user_id),
    labels: LabelService = Depends(get_label_service),
) -> WantlistSyncResponse:
    return WantlistSyncResponse.from_result(await labels.sync_wantlist(user_id))
