"""API schemas for label management."""

from datetime import datetime

from pydantic import BaseModel, Field

from cratedigger.application.services import WantlistSyncResult
from cratedigger.domain.entities import Label


class AddLabelRequest(BaseModel):
    """Request schema for adding a label."""

    label: str = Field(
        ...,
        min_length=1,
        description="Discogs label id, discogs.com/label URL, or a name to search for",
    )


class SetActiveRequest(BaseModel):
    active: bool


class LabelResponse(BaseModel):
    """Schema for a label and its crawl state."""

    id: int
    name: str
    discogs_url: str
    active: bool
    status: str
    current_page: int
    total_pages: int
    retry_count: int
    last_error: str | None
    blurb: str | None
    image_url: str | None
    notable_releases: list[str]
    added_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, label: Label) -> "LabelResponse":
        return cls(
            id=label.id,
            name=label.name,
            discogs_url=label.discogs_url,
            active=label.active,
            status=label.status.value,
            current_page=label.current_page,
            total_pages=label.total_pages,
            retry_count=label.retry_count,
            last_error=label.last_error,
            blurb=label.blurb,
            image_url=label.image_url,
            notable_releases=list(label.notable_releases),
            added_at=label.added_at,
            updated_at=label.updated_at,
        )


class WishlistToggleResponse(BaseModel):
    release_id: int
    wishlist: bool


class WantlistSyncResponse(BaseModel):
    wanted: int
    flagged: int
    imported: int

    @classmethod
    def from_result(cls, result: WantlistSyncResult) -> "WantlistSyncResponse":
        return cls(wanted=result.wanted, flagged=result.flagged, imported=result.imported)
