"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from cratedigger.domain.exceptions import InvalidStateException
from cratedigger.domain.value_objects import TagSet


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me, label status is a CLOSED state machine. Don't assign label.status directly -
# go through Label.transition_to() so an illegal jump (paused -> complete, say) blows up loudly
# instead of leaving a label that the poller will never pick up again. Values are stored as
# plain strings in the DB.
class LabelStatus(str, Enum):
    """Crawl status of a label."""

    QUEUED = "queued"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETE = "complete"
    ERROR = "error"

    def can_transition_to(self, target: "LabelStatus") -> bool:
        return target in LABEL_TRANSITIONS[self]


LABEL_TRANSITIONS: dict[LabelStatus, frozenset[LabelStatus]] = {
    LabelStatus.QUEUED: frozenset(
        {
            LabelStatus.QUEUED,
            LabelStatus.PROCESSING,
            LabelStatus.COMPLETE,
            LabelStatus.ERROR,
            LabelStatus.PAUSED,
        }
    ),
    LabelStatus.PROCESSING: frozenset(
        {
            LabelStatus.QUEUED,
            LabelStatus.PROCESSING,
            LabelStatus.COMPLETE,
            LabelStatus.ERROR,
            LabelStatus.PAUSED,
        }
    ),
    LabelStatus.ERROR: frozenset(
        {
            LabelStatus.QUEUED,
            LabelStatus.PROCESSING,
            LabelStatus.COMPLETE,
            LabelStatus.ERROR,
        }
    ),
    LabelStatus.COMPLETE: frozenset(
        {LabelStatus.QUEUED, LabelStatus.PROCESSING, LabelStatus.COMPLETE}
    ),
    LabelStatus.PAUSED: frozenset({LabelStatus.QUEUED, LabelStatus.PAUSED}),
}


class ReleaseState(str, Enum):
    """Whether a release's track list has been pulled."""

    PENDING = "pending"
    DETAILED = "detailed"

    def can_transition_to(self, target: "ReleaseState") -> bool:
        return target in RELEASE_TRANSITIONS[self]


RELEASE_TRANSITIONS: dict[ReleaseState, frozenset[ReleaseState]] = {
    ReleaseState.PENDING: frozenset({ReleaseState.DETAILED}),
    # reprocessing replaces the track list wholesale
    ReleaseState.DETAILED: frozenset({ReleaseState.PENDING, ReleaseState.DETAILED}),
}


class QueueStatus(str, Enum):
    """Playback queue item status."""

    PENDING = "pending"
    PLAYED = "played"

    def can_transition_to(self, target: "QueueStatus") -> bool:
        return target in QUEUE_TRANSITIONS[self]


QUEUE_TRANSITIONS: dict[QueueStatus, frozenset[QueueStatus]] = {
    QueueStatus.PENDING: frozenset({QueueStatus.PLAYED}),
    QueueStatus.PLAYED: frozenset(),
}


class QueueSource(str, Enum):
    """How a queue item's video was found."""

    CATALOG_TRACK_VIDEO = "catalog_track_video"
    STOREFRONT_TRACK_VIDEO = "storefront_track_video"
    KEYWORD_SEARCH = "keyword_search"
    MANUAL_OVERRIDE = "manual_override"
    RELEASE_FALLBACK = "release_fallback"
    INBOX = "inbox"


class MatchSource(str, Enum):
    """Cascade stage that produced a video candidate."""

    CATALOG = "catalog"
    STOREFRONT = "storefront"
    KEYWORD = "keyword"
    RELEASE_VIDEO = "release_video"

    @property
    def queue_source(self) -> QueueSource:
        return {
            MatchSource.CATALOG: QueueSource.CATALOG_TRACK_VIDEO,
            MatchSource.STOREFRONT: QueueSource.STOREFRONT_TRACK_VIDEO,
            MatchSource.KEYWORD: QueueSource.KEYWORD_SEARCH,
            MatchSource.RELEASE_VIDEO: QueueSource.CATALOG_TRACK_VIDEO,
        }[self]


class PlaybackMode(str, Enum):
    """Which queue items next_item() may pick."""

    TRACK = "track"
    RELEASE = "release"
    HYBRID = "hybrid"


@dataclass
class Label:
    """A catalog imprint whose releases are crawled page by page."""

    id: int
    user_id: str
    name: str
    discogs_url: str
    active: bool = False
    status: LabelStatus = LabelStatus.QUEUED
    current_page: int = 1
    total_pages: int = 1
    retry_count: int = 0
    last_error: str | None = None
    blurb: str | None = None
    image_url: str | None = None
    notable_releases: TagSet = field(default_factory=TagSet)
    added_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_crawl_eligible(self) -> bool:
        return self.active

    @property
    def has_more_pages(self) -> bool:
        return self.current_page <= self.total_pages

    def transition_to(self, target: LabelStatus) -> None:
        """Move to another status, rejecting transitions outside the table."""
        if not self.status.can_transition_to(target):
            raise InvalidStateException(
                f"Label {self.id} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target
        self.updated_at = utc_now()

    def advance_page(self, reported_total_pages: int) -> None:
        """Record one fetched page; current_page never goes backwards."""
        self.current_page += 1
        self.total_pages = reported_total_pages
        self.last_error = None
        self.updated_at = utc_now()

    def mark_processing(self) -> None:
        self.transition_to(LabelStatus.PROCESSING)
        self.last_error = None

    def mark_complete(self) -> None:
        self.transition_to(LabelStatus.COMPLETE)
        self.last_error = None

    def fail(self, message: str, limit: int = 1200) -> None:
        """Enter error status; error implies last_error set and retry_count bumped."""
        self.transition_to(LabelStatus.ERROR)
        self.retry_count += 1
        self.last_error = message[:limit]

    def requeue(self) -> None:
        """Manual or automatic retry."""
        self.transition_to(LabelStatus.QUEUED)
        self.retry_count = 0
        self.last_error = None

    def pause(self) -> None:
        self.transition_to(LabelStatus.PAUSED)


@dataclass
class Release:
    """One catalog item of a label."""

    id: int
    user_id: str
    label_id: int
    title: str
    discogs_url: str
    artist: str = "Unknown Artist"
    year: int | None = None
    catno: str | None = None
    thumb_url: str | None = None
    details_fetched: bool = False
    youtube_matched: bool = False
    listened: bool = False
    wishlist: bool = False
    match_confidence: float = 0.0
    processing_error: str | None = None
    release_order: int = 0
    import_source: str = "label"
    fetched_at: datetime = field(default_factory=utc_now)

    @property
    def state(self) -> ReleaseState:
        return ReleaseState.DETAILED if self.details_fetched else ReleaseState.PENDING

    def mark_detailed(self) -> None:
        if not self.state.can_transition_to(ReleaseState.DETAILED):
            raise InvalidStateException(f"Release {self.id} cannot be detailed")
        self.details_fetched = True
        self.processing_error = None
        self.fetched_at = utc_now()

    def record_match_outcome(self, matched: int, total: int) -> None:
        """Store the fraction of tracks with a confident match."""
        self.match_confidence = 0.0 if total == 0 else matched / total
        self.youtube_matched = matched > 0
        self.fetched_at = utc_now()


@dataclass
class Track:
    """One playable item of a release."""

    release_id: int
    user_id: str
    position: str
    title: str
    duration: str | None = None
    artists_text: str | None = None
    listened: bool = False
    saved: bool = False
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class VideoCandidate:
    """A scored video proposal for one track, produced by a cascade stage."""

    video_id: str
    title: str
    channel_title: str
    score: float
    source: MatchSource


@dataclass
class VideoMatch:
    """A persisted track → video mapping; at most one per track is chosen."""

    track_id: int
    user_id: str
    video_id: str
    title: str
    channel_title: str
    score: float = 0.0
    embeddable: bool = True
    chosen: bool = False
    id: int | None = None
    fetched_at: datetime = field(default_factory=utc_now)


@dataclass
class QueueItem:
    """Playback queue entry; at most one pending item per (track, video)."""

    video_id: str
    user_id: str
    source: QueueSource
    track_id: int | None = None
    release_id: int | None = None
    label_id: int | None = None
    priority: int = 0
    status: QueueStatus = QueueStatus.PENDING
    bumped_at: datetime | None = None
    id: int | None = None
    added_at: datetime = field(default_factory=utc_now)

    @property
    def is_release_level(self) -> bool:
        return self.track_id is None

    def mark_played(self) -> None:
        if not self.status.can_transition_to(QueueStatus.PLAYED):
            raise InvalidStateException(f"Queue item {self.id} is already {self.status.value}")
        self.status = QueueStatus.PLAYED


@dataclass
class ReleaseSignals:
    """Descriptive tags of a release, consumed by the recommendation engine."""

    release_id: int
    user_id: str
    primary_artist: str | None = None
    styles: TagSet = field(default_factory=TagSet)
    genres: TagSet = field(default_factory=TagSet)
    contributors: TagSet = field(default_factory=TagSet)
    companies: TagSet = field(default_factory=TagSet)
    formats: TagSet = field(default_factory=TagSet)
    country: str | None = None
    year: int | None = None
    updated_at: datetime = field(default_factory=utc_now)


__all__ = [
    "LABEL_TRANSITIONS",
    "QUEUE_TRANSITIONS",
    "RELEASE_TRANSITIONS",
    "Label",
    "LabelStatus",
    "MatchSource",
    "PlaybackMode",
    "QueueItem",
    "QueueSource",
    "QueueStatus",
    "Release",
    "ReleaseSignals",
    "ReleaseState",
    "Track",
    "VideoCandidate",
    "VideoMatch",
    "utc_now",
]
