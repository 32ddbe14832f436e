"""Data Transfer Objects returned by the provider clients.

Hey future me - clients turn raw provider JSON into these dumb carriers so services never
poke around in Discogs/YouTube dicts. Entities (with ids, status, tenant) are built from
them in the services, never in the clients.

Flow: Provider JSON → DTO → Service → Repository → Entity
"""

from dataclasses import dataclass, field


@dataclass
class LabelReleaseSummary:
    """One row of a label's release list page."""

    id: int
    title: str
    artist: str = "Unknown Artist"
    year: int | None = None
    catno: str | None = None
    thumb: str | None = None


@dataclass
class LabelReleasePage:
    """A page of a label's releases plus the provider's pagination."""

    releases: list[LabelReleaseSummary]
    page: int
    pages: int


@dataclass
class TracklistEntry:
    """A tracklist row of a release (headings have empty titles)."""

    position: str
    title: str
    duration: str | None = None
    artists: list[str] = field(default_factory=list)


@dataclass
class ReleaseVideo:
    """A video link embedded in a release page."""

    uri: str
    title: str = ""


@dataclass
class ReleaseDetail:
    """Full release metadata."""

    id: int
    title: str
    tracklist: list[TracklistEntry] = field(default_factory=list)
    videos: list[ReleaseVideo] = field(default_factory=list)
    artists_sort: str | None = None
    artists: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    contributors: list[str] = field(default_factory=list)
    contributor_roles: list[str] = field(default_factory=list)
    companies: list[str] = field(default_factory=list)
    formats: list[str] = field(default_factory=list)
    country: str | None = None
    year: int | None = None
    label_id: int | None = None
    label_name: str | None = None
    catno: str | None = None

    @property
    def primary_artist(self) -> str | None:
        if self.artists_sort and self.artists_sort.strip():
            return self.artists_sort.strip()
        if self.artists:
            return self.artists[0]
        return None


@dataclass
class WantItem:
    """One wantlist entry."""

    release_id: int
    title: str
    artist: str
    discogs_url: str
    thumb_url: str | None = None
    catno: str | None = None
    label_id: int | None = None
    label_name: str | None = None


@dataclass
class LabelProfile:
    """Descriptive label metadata."""

    name: str | None = None
    blurb: str | None = None
    image_url: str | None = None


@dataclass
class LabelSearchResult:
    id: int
    title: str


@dataclass
class VideoSearchItem:
    """One keyword video search hit."""

    video_id: str
    title: str
    channel_title: str


__all__ = [
    "LabelProfile",
    "LabelReleasePage",
    "LabelReleaseSummary",
    "LabelSearchResult",
    "ReleaseDetail",
    "ReleaseVideo",
    "TracklistEntry",
    "VideoSearchItem",
    "WantItem",
]
