"""Repository implementations for domain entities.

Hey future me - EVERY repository is built with (session, user_id) and EVERY query filters on
user_id, every insert writes it. That's the whole tenant-scoping story; there is no other
guard. If you add a method and forget the user_id filter, one user sees another user's crate.

Repositories only stage changes (add/flush/update statements). Commit happens in
Database.session_scope() - the service or route owns the transaction.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cratedigger.domain.dtos import LabelReleaseSummary
from cratedigger.domain.entities import (
    Label,
    LabelStatus,
    PlaybackMode,
    QueueItem,
    QueueSource,
    QueueStatus,
    Release,
    ReleaseSignals,
    Track,
    VideoCandidate,
    VideoMatch,
    utc_now,
)
from cratedigger.domain.exceptions import EntityNotFoundException
from cratedigger.domain.value_objects import TagSet

from .models import (
    LabelModel,
    QueueItemModel,
    ReleaseModel,
    ReleaseSignalsModel,
    TrackModel,
    VideoMatchModel,
    ensure_utc_aware,
)


def _aware(value: datetime | None) -> datetime | None:
    return ensure_utc_aware(value) if value is not None else None


class _TenantRepository:
    def __init__(self, session: AsyncSession, user_id: str) -> None:
        """Initialize repository with session and acting tenant."""
        self.session = session
        self.user_id = user_id


class LabelRepository(_TenantRepository):
    """SQLAlchemy implementation of the Label repository."""

    @staticmethod
    def _to_entity(model: LabelModel) -> Label:
        return Label(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            discogs_url=model.discogs_url,
            active=model.active,
            status=LabelStatus(model.status),
            current_page=model.current_page,
            total_pages=model.total_pages,
            retry_count=model.retry_count,
            last_error=model.last_error,
            blurb=model.blurb,
            image_url=model.image_url,
            notable_releases=TagSet.decode(model.notable_releases),
            added_at=ensure_utc_aware(model.added_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    # populate_existing: a label can be paused or deactivated by another request while a
    # step is running, and the step re-reads it before writing back
    async def _get_model(self, label_id: int) -> LabelModel | None:
        stmt = select(LabelModel).where(
            LabelModel.id == label_id, LabelModel.user_id == self.user_id
        ).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, label: Label) -> None:
        """Add a new label."""
        self.session.add(
            LabelModel(
                id=label.id,
                user_id=self.user_id,
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
                notable_releases=label.notable_releases.encode(),
                added_at=label.added_at,
                updated_at=label.updated_at,
            )
        )
        await self.session.flush()

    async def update(self, label: Label) -> None:
        """Write back every mutable field of a label."""
        model = await self._get_model(label.id)
        if model is None:
            raise EntityNotFoundException("Label", label.id)

        model.name = label.name
        model.discogs_url = label.discogs_url
        model.active = label.active
        model.status = label.status.value
        model.current_page = label.current_page
        model.total_pages = label.total_pages
        model.retry_count = label.retry_count
        model.last_error = label.last_error
        model.blurb = label.blurb
        model.image_url = label.image_url
        model.notable_releases = label.notable_releases.encode()
        model.updated_at = label.updated_at
        await self.session.flush()

    async def get_by_id(self, label_id: int) -> Label | None:
        """Get a label by (stored) id."""
        model = await self._get_model(label_id)
        return self._to_entity(model) if model else None

    async def list_all(self) -> list[Label]:
        stmt = (
            select(LabelModel)
            .where(LabelModel.user_id == self.user_id)
            .order_by(LabelModel.added_at.asc(), LabelModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def delete(self, label_id: int) -> bool:
        """Delete a label; releases, tracks, matches and queue items cascade."""
        stmt = delete(LabelModel).where(
            LabelModel.id == label_id, LabelModel.user_id == self.user_id
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]


class ReleaseRepository(_TenantRepository):
    """SQLAlchemy implementation of the Release repository."""

    @staticmethod
    def _to_entity(model: ReleaseModel) -> Release:
        return Release(
            id=model.id,
            user_id=model.user_id,
            label_id=model.label_id,
            title=model.title,
            discogs_url=model.discogs_url,
            artist=model.artist,
            year=model.year,
            catno=model.catno,
            thumb_url=model.thumb_url,
            details_fetched=model.details_fetched,
            youtube_matched=model.youtube_matched,
            listened=model.listened,
            wishlist=model.wishlist,
            match_confidence=model.match_confidence,
            processing_error=model.processing_error,
            release_order=model.release_order,
            import_source=model.import_source,
            fetched_at=ensure_utc_aware(model.fetched_at),
        )

    async def _get_model(self, release_id: int) -> ReleaseModel | None:
        stmt = select(ReleaseModel).where(
            ReleaseModel.id == release_id, ReleaseModel.user_id == self.user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, release_id: int) -> Release | None:
        model = await self._get_model(release_id)
        return self._to_entity(model) if model else None

    async def add(self, release: Release) -> None:
        self.session.add(
            ReleaseModel(
                id=release.id,
                user_id=self.user_id,
                label_id=release.label_id,
                title=release.title,
                artist=release.artist,
                year=release.year,
                catno=release.catno,
                discogs_url=release.discogs_url,
                thumb_url=release.thumb_url,
                details_fetched=release.details_fetched,
                youtube_matched=release.youtube_matched,
                listened=release.listened,
                wishlist=release.wishlist,
                match_confidence=release.match_confidence,
                processing_error=release.processing_error,
                release_order=release.release_order,
                import_source=release.import_source,
                fetched_at=release.fetched_at,
            )
        )
        await self.session.flush()

    async def update(self, release: Release) -> None:
        model = await self._get_model(release.id)
        if model is None:
            raise EntityNotFoundException("Release", release.id)

        model.label_id = release.label_id
        model.title = release.title
        model.artist = release.artist
        model.year = release.year
        model.catno = release.catno
        model.thumb_url = release.thumb_url
        model.details_fetched = release.details_fetched
        model.youtube_matched = release.youtube_matched
        model.listened = release.listened
        model.wishlist = release.wishlist
        model.match_confidence = release.match_confidence
        model.processing_error = release.processing_error
        model.release_order = release.release_order
        model.import_source = release.import_source
        model.fetched_at = release.fetched_at
        await self.session.flush()

    # Hey future me - the ingestion step loads a release, talks to Discogs/YouTube for a
    # while, then writes. The user can flip wishlist/listened in between, so the step must
    # only write the columns it owns or it silently undoes those clicks.
    async def update_processing_result(self, release: Release) -> None:
        """Write the ingestion-owned columns only (details, match outcome, errors)."""
        model = await self._get_model(release.id)
        if model is None:
            raise EntityNotFoundException("Release", release.id)

        model.year = release.year
        model.catno = release.catno
        model.details_fetched = release.details_fetched
        model.youtube_matched = release.youtube_matched
        model.match_confidence = release.match_confidence
        model.processing_error = release.processing_error
        model.fetched_at = release.fetched_at
        await self.session.flush()

    async def existing_ids(self, release_ids: Iterable[int]) -> set[int]:
        """Which of these ids already have a row.

        Deliberately not tenant-filtered: this guards the primary key, which is global.
        """
        ids = list(release_ids)
        if not ids:
            return set()
        stmt = select(ReleaseModel.id).where(ReleaseModel.id.in_(ids))
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    # Hey future me - this is "INSERT ... ON CONFLICT DO NOTHING" done portably: look up which
    # ids exist, insert the rest. Safe because only one step runs at a time. A release that is
    # already known (same page fetched twice, or listed on two labels) keeps its old row.
    async def insert_page_ignoring_existing(
        self,
        label_id: int,
        summaries: Sequence[LabelReleaseSummary],
        stored_ids: Sequence[int],
        first_order: int,
    ) -> int:
        """Insert a page of release summaries, skipping ids that already exist.

        Args:
            label_id: Owning (stored) label id
            summaries: Release rows as returned by the catalog
            stored_ids: Tenant-scoped ids, parallel to summaries
            first_order: release_order of the first summary on the page

        Returns:
            Number of rows inserted
        """
        existing = await self.existing_ids(stored_ids)
        now = utc_now()
        inserted = 0
        for index, (summary, stored_id) in enumerate(zip(summaries, stored_ids, strict=True)):
            if stored_id in existing:
                continue
            existing.add(stored_id)
            self.session.add(
                ReleaseModel(
                    id=stored_id,
                    user_id=self.user_id,
                    label_id=label_id,
                    title=summary.title,
                    artist=summary.artist or "Unknown Artist",
                    year=summary.year,
                    catno=summary.catno,
                    discogs_url=f"https://www.discogs.com/release/{summary.id}",
                    thumb_url=summary.thumb,
                    fetched_at=now,
                    release_order=first_order + index,
                )
            )
            inserted += 1
        await self.session.flush()
        return inserted

    async def next_pending(self, label_id: int) -> Release | None:
        """Oldest release of the label whose track list hasn't been fetched."""
        stmt = (
            select(ReleaseModel)
            .where(
                ReleaseModel.user_id == self.user_id,
                ReleaseModel.label_id == label_id,
                ReleaseModel.details_fetched.is_(False),
            )
            .order_by(ReleaseModel.release_order.asc(), ReleaseModel.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_label(self, label_id: int) -> list[Release]:
        stmt = (
            select(ReleaseModel)
            .where(ReleaseModel.user_id == self.user_id, ReleaseModel.label_id == label_id)
            .order_by(ReleaseModel.release_order.asc(), ReleaseModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_ids(self) -> list[int]:
        stmt = select(ReleaseModel.id).where(ReleaseModel.user_id == self.user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_wishlist_flags(self, wanted_ids: set[int]) -> int:
        """Set wishlist=True exactly for the given ids, False for every other release.

        Returns:
            Number of releases now flagged
        """
        await self.session.execute(
            update(ReleaseModel)
            .where(ReleaseModel.user_id == self.user_id)
            .values(wishlist=False)
        )
        if not wanted_ids:
            return 0
        result = await self.session.execute(
            update(ReleaseModel)
            .where(ReleaseModel.user_id == self.user_id, ReleaseModel.id.in_(wanted_ids))
            .values(wishlist=True)
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]


class TrackRepository(_TenantRepository):
    """SQLAlchemy implementation of the Track repository."""

    @staticmethod
    def _to_entity(model: TrackModel) -> Track:
        return Track(
            id=model.id,
            release_id=model.release_id,
            user_id=model.user_id,
            position=model.position,
            title=model.title,
            duration=model.duration,
            artists_text=model.artists_text,
            listened=model.listened,
            saved=model.saved,
            created_at=ensure_utc_aware(model.created_at),
        )

    async def get_by_id(self, track_id: int) -> Track | None:
        stmt = select(TrackModel).where(
            TrackModel.id == track_id, TrackModel.user_id == self.user_id
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_release(self, release_id: int) -> list[Track]:
        """Tracks of a release in insertion order."""
        stmt = (
            select(TrackModel)
            .where(TrackModel.user_id == self.user_id, TrackModel.release_id == release_id)
            .order_by(TrackModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_for_release(self, release_id: int) -> int:
        stmt = select(func.count(TrackModel.id)).where(
            TrackModel.user_id == self.user_id, TrackModel.release_id == release_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    # Listen up, this is the "tracks are authoritative" rule: reprocessing a release never
    # merges, it wipes and re-inserts. Matches and queue items of the old tracks cascade away.
    async def replace_for_release(self, release_id: int, tracks: Sequence[Track]) -> list[Track]:
        """Delete a release's tracks and insert the new list.

        Returns:
            The inserted tracks with database ids, in input order
        """
        await self.session.execute(
            delete(TrackModel).where(
                TrackModel.user_id == self.user_id, TrackModel.release_id == release_id
            )
        )
        models = [
            TrackModel(
                user_id=self.user_id,
                release_id=release_id,
                position=track.position,
                title=track.title,
                duration=track.duration,
                artists_text=track.artists_text,
                listened=track.listened,
                saved=track.saved,
                created_at=track.created_at,
            )
            for track in tracks
        ]
        self.session.add_all(models)
        await self.session.flush()
        return [self._to_entity(model) for model in models]

    async def add(self, track: Track) -> Track:
        model = TrackModel(
            user_id=self.user_id,
            release_id=track.release_id,
            position=track.position,
            title=track.title,
            duration=track.duration,
            artists_text=track.artists_text,
            listened=track.listened,
            saved=track.saved,
            created_at=track.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_entity(model)

    async def set_flags(
        self, track_id: int, *, listened: bool | None = None, saved: bool | None = None
    ) -> None:
        values: dict[str, bool] = {}
        if listened is not None:
            values["listened"] = listened
        if saved is not None:
            values["saved"] = saved
        if not values:
            return
        await self.session.execute(
            update(TrackModel)
            .where(TrackModel.id == track_id, TrackModel.user_id == self.user_id)
            .values(**values)
        )


class VideoMatchRepository(_TenantRepository):
    """SQLAlchemy implementation of the VideoMatch repository."""

    @staticmethod
    def _to_entity(model: VideoMatchModel) -> VideoMatch:
        return VideoMatch(
            id=model.id,
            track_id=model.track_id,
            user_id=model.user_id,
            video_id=model.video_id,
            title=model.title,
            channel_title=model.channel_title,
            score=model.score,
            embeddable=model.embeddable,
            chosen=model.chosen,
            fetched_at=ensure_utc_aware(model.fetched_at),
        )

    async def get_by_id(self, match_id: int) -> VideoMatch | None:
        stmt = select(VideoMatchModel).where(
            VideoMatchModel.id == match_id, VideoMatchModel.user_id == self.user_id
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_track(self, track_id: int) -> list[VideoMatch]:
        """Matches of a track, chosen first, then by score."""
        stmt = (
            select(VideoMatchModel)
            .where(VideoMatchModel.user_id == self.user_id, VideoMatchModel.track_id == track_id)
            .order_by(
                VideoMatchModel.chosen.desc(),
                VideoMatchModel.score.desc(),
                VideoMatchModel.id.asc(),
            )
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    # Hey future me - this is the ONLY way matches get written. Dedup keeps the first
    # occurrence (cascade order = priority order), the old set is deleted in the same
    # transaction, and row 0 is chosen. So "exactly one chosen" holds after every call.
    async def replace_for_track(
        self, track_id: int, candidates: Sequence[VideoCandidate]
    ) -> list[VideoMatch]:
        """Replace a track's candidate set; the first candidate becomes chosen.

        An empty candidate list is a no-op (existing matches stay).
        """
        unique: dict[str, VideoCandidate] = {}
        for candidate in candidates:
            unique.setdefault(candidate.video_id, candidate)
        if not unique:
            return []

        await self.session.execute(
            delete(VideoMatchModel).where(
                VideoMatchModel.user_id == self.user_id, VideoMatchModel.track_id == track_id
            )
        )
        now = utc_now()
        models = [
            VideoMatchModel(
                user_id=self.user_id,
                track_id=track_id,
                video_id=candidate.video_id,
                title=candidate.title,
                channel_title=candidate.channel_title,
                score=candidate.score,
                embeddable=True,
                chosen=index == 0,
                fetched_at=now,
            )
            for index, candidate in enumerate(unique.values())
        ]
        self.session.add_all(models)
        await self.session.flush()
        return [self._to_entity(model) for model in models]

    async def choose(self, track_id: int, match_id: int) -> None:
        """Un-choose every match of the track, then choose one (same transaction)."""
        await self.session.execute(
            update(VideoMatchModel)
            .where(VideoMatchModel.user_id == self.user_id, VideoMatchModel.track_id == track_id)
            .values(chosen=False)
        )
        await self.session.execute(
            update(VideoMatchModel)
            .where(
                VideoMatchModel.user_id == self.user_id,
                VideoMatchModel.track_id == track_id,
                VideoMatchModel.id == match_id,
            )
            .values(chosen=True)
        )
        await self.session.flush()


class QueueItemRepository(_TenantRepository):
    """SQLAlchemy implementation of the playback queue."""

    @staticmethod
    def _to_entity(model: QueueItemModel) -> QueueItem:
        return QueueItem(
            id=model.id,
            user_id=model.user_id,
            video_id=model.video_id,
            track_id=model.track_id,
            release_id=model.release_id,
            label_id=model.label_id,
            source=QueueSource(model.source),
            priority=model.priority,
            status=QueueStatus(model.status),
            bumped_at=_aware(model.bumped_at),
            added_at=ensure_utc_aware(model.added_at),
        )

    def _pending(self) -> Select[tuple[QueueItemModel]]:
        return select(QueueItemModel).where(
            QueueItemModel.user_id == self.user_id,
            QueueItemModel.status == QueueStatus.PENDING.value,
        )

    async def _first(self, stmt: Select[tuple[QueueItemModel]]) -> QueueItem | None:
        result = await self.session.execute(stmt.order_by(QueueItemModel.id.asc()).limit(1))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_id(self, item_id: int) -> QueueItem | None:
        return await self._first(
            select(QueueItemModel).where(
                QueueItemModel.id == item_id, QueueItemModel.user_id == self.user_id
            )
        )

    async def find_pending(self, track_id: int, video_id: str) -> QueueItem | None:
        """The pending item for this exact (track, video) pair, if any."""
        return await self._first(
            self._pending().where(
                QueueItemModel.track_id == track_id, QueueItemModel.video_id == video_id
            )
        )

    async def find_pending_for_track(self, track_id: int) -> QueueItem | None:
        return await self._first(self._pending().where(QueueItemModel.track_id == track_id))

    async def find_pending_release_level(self, release_id: int) -> QueueItem | None:
        return await self._first(
            self._pending().where(
                QueueItemModel.release_id == release_id, QueueItemModel.track_id.is_(None)
            )
        )

    async def add(self, item: QueueItem) -> QueueItem:
        """Insert a queue item and return it with its id."""
        model = QueueItemModel(
            user_id=self.user_id,
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
        self.session.add(model)
        await self.session.flush()
        return self._to_entity(model)

    async def add_pending_if_absent(self, item: QueueItem) -> tuple[QueueItem, bool]:
        """Insert a track-level pending item unless the (track, video) pair is queued.

        Returns:
            (item, created) - the existing item and False when nothing was inserted
        """
        if item.track_id is not None:
            existing = await self.find_pending(item.track_id, item.video_id)
            if existing is not None:
                return existing, False
        return await self.add(item), True

    async def update(self, item: QueueItem) -> None:
        await self.session.execute(
            update(QueueItemModel)
            .where(QueueItemModel.id == item.id, QueueItemModel.user_id == self.user_id)
            .values(
                priority=item.priority,
                status=item.status.value,
                bumped_at=item.bumped_at,
            )
        )

    async def max_pending_priority(self) -> int:
        stmt = select(func.max(QueueItemModel.priority)).where(
            QueueItemModel.user_id == self.user_id,
            QueueItemModel.status == QueueStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one_or_none() or 0)

    async def mark_played(self, item_id: int) -> None:
        await self.session.execute(
            update(QueueItemModel)
            .where(QueueItemModel.id == item_id, QueueItemModel.user_id == self.user_id)
            .values(status=QueueStatus.PLAYED.value)
        )

    async def mark_track_played(self, track_id: int) -> int:
        """Mark every pending item of a track played. Returns rows touched."""
        result = await self.session.execute(
            update(QueueItemModel)
            .where(
                QueueItemModel.user_id == self.user_id,
                QueueItemModel.track_id == track_id,
                QueueItemModel.status == QueueStatus.PENDING.value,
            )
            .values(status=QueueStatus.PLAYED.value)
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    # Yo, the queue ordering: priority DESC, then most recently bumped, then FIFO by id.
    # NULL bumped_at sorts last (nulls_last) so "play next" bumps always win ties.
    # Only items whose label is active are playable - the inner join drops the rest.
    async def next_pending(self, mode: PlaybackMode) -> QueueItem | None:
        """Highest-priority pending item of an active label for a playback mode."""
        stmt = (
            self._pending()
            .join(LabelModel, LabelModel.id == QueueItemModel.label_id)
            .where(LabelModel.active.is_(True), LabelModel.user_id == self.user_id)
        )
        if mode == PlaybackMode.TRACK:
            stmt = stmt.where(QueueItemModel.track_id.is_not(None))
        elif mode == PlaybackMode.RELEASE:
            stmt = stmt.where(QueueItemModel.track_id.is_(None))

        stmt = stmt.order_by(
            QueueItemModel.priority.desc(),
            QueueItemModel.bumped_at.desc().nulls_last(),
            QueueItemModel.id.asc(),
        ).limit(1)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_pending(self) -> list[QueueItem]:
        stmt = self._pending().order_by(
            QueueItemModel.priority.desc(),
            QueueItemModel.bumped_at.desc().nulls_last(),
            QueueItemModel.id.asc(),
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]


class ReleaseSignalsRepository(_TenantRepository):
    """Stores release tags; TagSets are encoded only here."""

    async def upsert(self, signals: ReleaseSignals) -> None:
        stmt = select(ReleaseSignalsModel).where(
            ReleaseSignalsModel.release_id == signals.release_id,
            ReleaseSignalsModel.user_id == self.user_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            model = ReleaseSignalsModel(release_id=signals.release_id, user_id=self.user_id)
            self.session.add(model)

        model.primary_artist = signals.primary_artist
        model.styles = signals.styles.encode()
        model.genres = signals.genres.encode()
        model.contributors = signals.contributors.encode()
        model.companies = signals.companies.encode()
        model.formats = signals.formats.encode()
        model.country = signals.country
        model.year = signals.year
        model.updated_at = signals.updated_at
        await self.session.flush()

    async def get_by_release(self, release_id: int) -> ReleaseSignals | None:
        stmt = select(ReleaseSignalsModel).where(
            ReleaseSignalsModel.release_id == release_id,
            ReleaseSignalsModel.user_id == self.user_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return ReleaseSignals(
            release_id=model.release_id,
            user_id=model.user_id,
            primary_artist=model.primary_artist,
            styles=TagSet.decode(model.styles),
            genres=TagSet.decode(model.genres),
            contributors=TagSet.decode(model.contributors),
            companies=TagSet.decode(model.companies),
            formats=TagSet.decode(model.formats),
            country=model.country,
            year=model.year,
            updated_at=ensure_utc_aware(model.updated_at),
        )
