"""Playback queue operations: choose a match, enqueue on demand, advance the queue."""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from cratedigger.config.settings import CrawlSettings
from cratedigger.domain.entities import (
    Label,
    PlaybackMode,
    QueueItem,
    QueueSource,
    QueueStatus,
    Release,
    Track,
    VideoCandidate,
    utc_now,
)
from cratedigger.domain.exceptions import (
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    InvalidStateException,
    is_fatal_config_error,
    is_quota_error,
)
from cratedigger.infrastructure.integrations.discogs_client import DiscogsClient
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    QueueItemRepository,
    ReleaseRepository,
    TrackRepository,
    VideoMatchRepository,
)

from .match_cascade import MatchCascade, release_video_candidate

logger = logging.getLogger(__name__)


class EnqueueReason(str, Enum):
    """Why an on-demand enqueue produced no queue item."""

    TRACK_NOT_FOUND = "track_not_found"
    LABEL_INACTIVE = "label_inactive"
    MATCH_NOT_FOUND = "match_not_found"
    NO_MATCH = "no_match"
    QUOTA_EXCEEDED = "quota_exceeded"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class EnqueueRejection:
    """Typed "nothing queued" result; not an exception on purpose."""

    reason: EnqueueReason
    message: str = ""


@dataclass
class _TrackContext:
    track: Track
    release: Release | None
    label: Label | None
    video_id: str | None


async def _recompute_release_listened(session: AsyncSession, user_id: str, release_id: int) -> None:
    """A release is listened once every one of its tracks is."""
    tracks = await TrackRepository(session, user_id).list_for_release(release_id)
    releases = ReleaseRepository(session, user_id)
    release = await releases.get_by_id(release_id)
    if release is None:
        return
    release.listened = bool(tracks) and all(track.listened for track in tracks)
    await releases.update(release)


class PlaybackService:
    """Queue-facing operations used by the player.

    Hey future me - enqueue_track_on_demand is the play-time half of the match cascade.
    It walks the sources in this order and stops at the first hit:

        explicit match → chosen/any stored match → seeded (catalog, storefront)
        → catalog release video → keyword search

    Keyword search is LAST because it's the only stage that costs YouTube quota.
    """

    def __init__(
        self,
        database: Database,
        discogs: DiscogsClient,
        cascade: MatchCascade,
        settings: CrawlSettings,
    ) -> None:
        self._database = database
        self._discogs = discogs
        self._cascade = cascade
        self.settings = settings

    async def choose_match(self, user_id: str, track_id: int, match_id: int) -> QueueItem | None:
        """Make one match the chosen one and make sure the track is queued.

        Un-choosing the old match and choosing the new one happen in one transaction.

        Returns:
            The manual_override item inserted, or None when the track was already queued

        Raises:
            EntityNotFoundException: Track or match (of that track) does not exist
        """
        async with self._database.session_scope() as session:
            matches = VideoMatchRepository(session, user_id)
            match = await matches.get_by_id(match_id)
            if match is None or match.track_id != track_id:
                raise EntityNotFoundException("VideoMatch", match_id)
            track = await TrackRepository(session, user_id).get_by_id(track_id)
            if track is None:
                raise EntityNotFoundException("Track", track_id)

            await matches.choose(track_id, match_id)

            queue = QueueItemRepository(session, user_id)
            if await queue.find_pending_for_track(track_id) is not None:
                return None
            release = await ReleaseRepository(session, user_id).get_by_id(track.release_id)
            item = await queue.add(
                QueueItem(
                    video_id=match.video_id,
                    user_id=user_id,
                    source=QueueSource.MANUAL_OVERRIDE,
                    track_id=track_id,
                    release_id=track.release_id,
                    label_id=release.label_id if release else None,
                )
            )
        logger.info(f"Track {track_id}: match {match_id} chosen, queued as manual override")
        return item

    async def enqueue_track_on_demand(
        self,
        user_id: str,
        track_id: int,
        match_id: int | None = None,
        queue_next: bool = False,
    ) -> QueueItem | EnqueueRejection:
        """Queue a track for playback, finding a video on the spot if needed.

        Args:
            user_id: Acting tenant
            track_id: Track to queue
            match_id: Use (and choose) this stored match instead of searching
            queue_next: Put the item at the front of the queue

        Returns:
            The new or reused pending item, or an EnqueueRejection

        Raises:
            FatalConfigurationError: A provider rejects the credential outright
        """
        context = await self._load_context(user_id, track_id, match_id)
        if isinstance(context, EnqueueRejection):
            return context

        video_id = context.video_id
        if video_id is None:
            found = await self._find_candidates(user_id, context)
            if isinstance(found, EnqueueRejection):
                return found
            if not found:
                return EnqueueRejection(EnqueueReason.NO_MATCH, "Track unavailable for playback.")
            async with self._database.session_scope() as session:
                await VideoMatchRepository(session, user_id).replace_for_track(track_id, found)
            video_id = found[0].video_id

        return await self._queue(user_id, context, video_id, queue_next)

    async def _load_context(
        self, user_id: str, track_id: int, match_id: int | None
    ) -> _TrackContext | EnqueueRejection:
        async with self._database.session_scope() as session:
            track = await TrackRepository(session, user_id).get_by_id(track_id)
            if track is None:
                return EnqueueRejection(EnqueueReason.TRACK_NOT_FOUND, "Track not found")
            release = await ReleaseRepository(session, user_id).get_by_id(track.release_id)
            label = (
                await LabelRepository(session, user_id).get_by_id(release.label_id)
                if release
                else None
            )
            if label is not None and not label.active:
                return EnqueueRejection(
                    EnqueueReason.LABEL_INACTIVE, "Label is inactive. Activate it to queue tracks."
                )

            matches = VideoMatchRepository(session, user_id)
            video_id: str | None = None
            if match_id is not None:
                match = await matches.get_by_id(match_id)
                if match is None or match.track_id != track_id:
                    return EnqueueRejection(
                        EnqueueReason.MATCH_NOT_FOUND, "Match not found for track."
                    )
                await matches.choose(track_id, match_id)
                video_id = match.video_id
            else:
                # chosen first, then best score
                stored = await matches.list_for_track(track_id)
                video_id = stored[0].video_id if stored else None

        return _TrackContext(track=track, release=release, label=label, video_id=video_id)

    async def _find_candidates(
        self, user_id: str, context: _TrackContext
    ) -> list[VideoCandidate] | EnqueueRejection:
        track, release = context.track, context.release
        if release is not None:
            try:
                detail = await self._discogs.fetch_release(user_id, release.id)
            except ExternalServiceError as e:
                if is_fatal_config_error(e):
                    raise
                logger.warning(f"Release detail unavailable for release {release.id}: {e}")
            else:
                seeded = await self._cascade.seed_candidates(user_id, release, [track], detail)
                if seeded.get(track.id or 0):
                    return seeded[track.id or 0]
                fallback = release_video_candidate(detail.videos, self.settings.release_video_score)
                if fallback is not None:
                    return [fallback]

            try:
                return await self._cascade.keyword_candidates(
                    user_id, track, release, context.label.name if context.label else None
                )
            except DomainException as e:
                if is_fatal_config_error(e):
                    raise
                if is_quota_error(e):
                    return EnqueueRejection(EnqueueReason.QUOTA_EXCEEDED, e.message)
                return EnqueueRejection(EnqueueReason.PROVIDER_ERROR, e.message)
        return []

    async def _queue(
        self, user_id: str, context: _TrackContext, video_id: str, queue_next: bool
    ) -> QueueItem:
        track = context.track
        if track.id is None:
            raise InvalidStateException("Only stored tracks can be queued")
        async with self._database.session_scope() as session:
            queue = QueueItemRepository(session, user_id)
            existing = await queue.find_pending(track.id, video_id)
            if existing is not None:
                if queue_next:
                    existing.priority = await queue.max_pending_priority() + 1
                    existing.bumped_at = utc_now()
                    await queue.update(existing)
                return existing

            priority = await queue.max_pending_priority() + 1 if queue_next else 0
            item = await queue.add(
                QueueItem(
                    video_id=video_id,
                    user_id=user_id,
                    source=QueueSource.INBOX,
                    track_id=track.id,
                    release_id=track.release_id,
                    label_id=context.release.label_id if context.release else None,
                    priority=priority,
                    bumped_at=utc_now() if queue_next else None,
                )
            )
        logger.info(f"Track {track.id} queued with video {video_id} (next={queue_next})")
        return item

    async def next_item(
        self,
        user_id: str,
        current_id: int | None = None,
        mode: PlaybackMode = PlaybackMode.HYBRID,
        listened: bool = False,
    ) -> QueueItem | None:
        """Finish the current item and return the next playable one.

        With listened=True the current item's track is marked listened too, which also
        retires every other pending item of that track.
        """
        async with self._database.session_scope() as session:
            queue = QueueItemRepository(session, user_id)
            if current_id is not None:
                current = await queue.get_by_id(current_id)
                if current is not None:
                    if listened and current.track_id is not None:
                        await TrackRepository(session, user_id).set_flags(
                            current.track_id, listened=True
                        )
                        await queue.mark_track_played(current.track_id)
                        if current.release_id is not None:
                            await _recompute_release_listened(session, user_id, current.release_id)
                    if current.status == QueueStatus.PENDING:
                        current.mark_played()
                        await queue.update(current)
            return await queue.next_pending(mode)

    async def toggle_listened(self, user_id: str, track_id: int) -> bool:
        """Flip a track's listened flag. Returns the new value."""
        async with self._database.session_scope() as session:
            tracks = TrackRepository(session, user_id)
            track = await tracks.get_by_id(track_id)
            if track is None:
                raise EntityNotFoundException("Track", track_id)
            listened = not track.listened
            await tracks.set_flags(track_id, listened=listened)
            if listened:
                await QueueItemRepository(session, user_id).mark_track_played(track_id)
            await _recompute_release_listened(session, user_id, track.release_id)
        return listened

    async def toggle_saved(self, user_id: str, track_id: int) -> bool:
        """Flip a track's saved flag. Returns the new value."""
        async with self._database.session_scope() as session:
            tracks = TrackRepository(session, user_id)
            track = await tracks.get_by_id(track_id)
            if track is None:
                raise EntityNotFoundException("Track", track_id)
            await tracks.set_flags(track_id, saved=not track.saved)
        return not track.saved


__all__ = ["EnqueueReason", "EnqueueRejection", "PlaybackService"]
