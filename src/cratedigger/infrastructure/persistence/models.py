"""SQLAlchemy ORM models for cratedigger."""

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive. Always run
# values read from the DB through this before comparing with datetime.now(UTC), otherwise
# "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, label and release ids are NOT autoincrement: they are tenant-scoped Discogs ids
# (see domain/value_objects/catalog_ids.py), so the same Discogs label crawled by two users
# gives two rows. BigInteger because namespace * 1e9 overflows a 32-bit int.
# Every child table cascades on delete - deleting a label wipes its releases, tracks,
# matches and queue items. SQLite needs PRAGMA foreign_keys=ON for that (database.py).
class LabelModel(Base):
    """A crawled catalog imprint."""

    __tablename__ = "labels"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    discogs_url: Mapped[str] = mapped_column(String(512), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # queued / processing / paused / complete / error (plain strings, enum lives in domain)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", index=True)
    current_page: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    blurb: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # JSON array of release titles, encoded by TagSet
    notable_releases: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class ReleaseModel(Base):
    """One release of a label."""

    __tablename__ = "releases"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    label_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("labels.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    artist: Mapped[str] = mapped_column(String(512), nullable=False, default="Unknown Artist")
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    catno: Mapped[str | None] = mapped_column(String(128), nullable=True)
    discogs_url: Mapped[str] = mapped_column(String(512), nullable=False)
    thumb_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    details_fetched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    youtube_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    listened: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    wishlist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    match_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # "label" (crawled) or "wantlist" (imported from the user's Discogs wants)
    import_source: Mapped[str] = mapped_column(String(20), nullable=False, default="label")
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        # the step function's "next pending release" query
        Index("ix_releases_label_pending", "label_id", "details_fetched", "release_order"),
    )


class TrackModel(Base):
    """One track of a release."""

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    release_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("releases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    duration: Mapped[str | None] = mapped_column(String(32), nullable=True)
    artists_text: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    listened: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    saved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class VideoMatchModel(Base):
    """Candidate video for a track; at most one chosen per track."""

    __tablename__ = "video_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    video_id: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    channel_title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    embeddable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    chosen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class QueueItemModel(Base):
    """Playback queue entry."""

    __tablename__ = "queue_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    video_id: Mapped[str] = mapped_column(String(32), nullable=False)
    track_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=True, index=True
    )
    release_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("releases.id", ondelete="CASCADE"), nullable=True, index=True
    )
    label_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("labels.id", ondelete="CASCADE"), nullable=True
    )
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    bumped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index("ix_queue_items_pending_order", "user_id", "status", "priority"),
    )


class ReleaseSignalsModel(Base):
    """Descriptive tags of a release (TagSet columns are JSON arrays)."""

    __tablename__ = "release_signals"

    release_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("releases.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    primary_artist: Mapped[str | None] = mapped_column(String(512), nullable=True)
    styles: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    genres: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    contributors: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    companies: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    formats: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


# Hey future me - provider responses AND block records live here. Composite key so two users
# can cache the same path without stepping on each other.
class ApiCacheModel(Base):
    """Generic key/TTL response cache."""

    __tablename__ = "api_cache"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(1024), primary_key=True)
    response_json: Mapped[str] = mapped_column(Text, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
