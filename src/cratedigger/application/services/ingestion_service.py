"""Label ingestion: advance one label by exactly one unit of work.

Hey future me - advance_label() is called over and over by the IngestionWorker (or the
/api/worker/process route) until it says done. One call does ONE of:

    1. process the oldest not-yet-detailed release of the label, or
    2. fetch the next page of the label's release list, or
    3. mark the label complete.

Pending releases always win over page fetching, so a label never races ahead of the
releases it already knows about.

Transactions are SHORT on purpose. Every DB phase opens its own session_scope() and no
session is held open while we wait on Discogs/YouTube/Bandcamp. The response cache writes
through its own sessions too, and SQLite only allows one writer at a time - a long-lived
transaction here would deadlock the cache. The price: a step is not atomic. If it dies
halfway the label goes to error and the release is simply reprocessed on retry, which is
fine because tracks and matches are replaced wholesale.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from cratedigger.config.settings import Settings
from cratedigger.domain.dtos import ReleaseDetail, TracklistEntry
from cratedigger.domain.entities import Label, LabelStatus, QueueItem, Release, Track
from cratedigger.domain.exceptions import DomainException, is_fatal_config_error
from cratedigger.domain.value_objects import to_stored_id
from cratedigger.infrastructure.integrations.discogs_client import DiscogsClient
from cratedigger.infrastructure.observability.logging import set_correlation_id
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    QueueItemRepository,
    ReleaseRepository,
    ReleaseSignalsRepository,
    TrackRepository,
    VideoMatchRepository,
)

from .match_cascade import CandidateMap, MatchCascade
from .release_signals import build_release_signals
from .weak_match_escalator import WeakMatchEscalator

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    """What a single ingestion step did."""

    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    PAUSED = "paused"
    FETCHED_PAGE = "fetched_page"
    PROCESSED_RELEASE = "processed_release"
    COMPLETE = "complete"
    ERROR = "error"
    BUSY = "busy"


@dataclass(frozen=True)
class StepResult:
    """Result reported back to the poller."""

    done: bool
    message: str
    outcome: StepOutcome


def tracks_from_tracklist(
    user_id: str, release_id: int, detail: ReleaseDetail
) -> list[Track]:
    """Build track rows from a tracklist; headings and blank rows are skipped."""
    tracks: list[Track] = []
    for entry in detail.tracklist:
        title = entry.title.strip()
        if not title:
            continue
        tracks.append(
            Track(
                release_id=release_id,
                user_id=user_id,
                position=entry.position.strip(),
                title=title,
                duration=entry.duration or None,
                artists_text=_artists_text(entry, detail),
            )
        )
    return tracks


def _artists_text(entry: TracklistEntry, detail: ReleaseDetail) -> str | None:
    if entry.artists:
        return ", ".join(entry.artists)
    return detail.artists_sort or None


class LabelIngestionService:
    """Crawls labels one step at a time."""

    def __init__(
        self,
        database: Database,
        discogs: DiscogsClient,
        cascade: MatchCascade,
        escalator: WeakMatchEscalator,
        settings: Settings,
    ) -> None:
        self._database = database
        self._discogs = discogs
        self._cascade = cascade
        self._escalator = escalator
        self.settings = settings

    async def advance_label(self, user_id: str, label_id: int) -> StepResult:
        """Advance a label by one unit of work.

        Never raises for provider or domain failures: those put the label into error
        status and come back as a not-done result with an "Error: ..." message.

        Args:
            user_id: Acting tenant
            label_id: Stored label id

        Returns:
            StepResult telling the poller whether to keep going
        """
        correlation_id = set_correlation_id()
        logger.debug(f"Advancing label {label_id} (step {correlation_id})")

        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is None:
                return StepResult(False, "Label not found", StepOutcome.NOT_FOUND)
            if not label.is_crawl_eligible:
                return StepResult(False, "Inactive", StepOutcome.INACTIVE)
            if label.status == LabelStatus.PAUSED:
                return StepResult(False, "Paused", StepOutcome.PAUSED)
            pending = await ReleaseRepository(session, user_id).next_pending(label.id)
            # Hey future me - a complete label can still have work: wantlist imports are
            # created complete with their page cursor untouched, and get crawled once the
            # user activates them. Reopen it before any provider call so a failure below
            # has a legal complete -> processing -> error path.
            if label.status == LabelStatus.COMPLETE and (
                pending is not None or label.has_more_pages
            ):
                label.mark_processing()
                await labels.update(label)

        try:
            if pending is not None:
                return await self._process_release(user_id, label, pending)
            if label.has_more_pages:
                return await self._fetch_page(user_id, label)
            return await self._complete(user_id, label)
        except Exception as e:
            # Fatal config errors land here too - the label is where they become visible
            logger.error(f"Label {label_id} step failed: {e}", exc_info=True)
            return await self._record_failure(user_id, label_id, e)

    async def _fetch_page(self, user_id: str, label: Label) -> StepResult:
        page_number = label.current_page
        page = await self._discogs.fetch_label_releases(user_id, label.id, page=page_number)
        page_size = self.settings.discogs.page_size
        stored_ids = [to_stored_id(user_id, summary.id, "release") for summary in page.releases]

        async with self._database.session_scope() as session:
            inserted = await ReleaseRepository(session, user_id).insert_page_ignoring_existing(
                label.id,
                page.releases,
                stored_ids,
                first_order=(page_number - 1) * page_size,
            )
            labels = LabelRepository(session, user_id)
            current = await labels.get_by_id(label.id)
            if current is None:
                return StepResult(False, "Label not found", StepOutcome.NOT_FOUND)
            # The cursor only ever moves forward, even if another request touched the label
            if current.current_page == page_number:
                current.advance_page(max(page.pages, 1))
            if current.status != LabelStatus.PAUSED:
                current.mark_processing()
            await labels.update(current)

        logger.info(
            f"Label {label.id}: page {page_number}/{page.pages} fetched, "
            f"{inserted} new release(s)"
        )
        return StepResult(
            False, f"Fetched page {page_number} of {page.pages}", StepOutcome.FETCHED_PAGE
        )

    async def _complete(self, user_id: str, label: Label) -> StepResult:
        if label.status != LabelStatus.COMPLETE:
            async with self._database.session_scope() as session:
                labels = LabelRepository(session, user_id)
                current = await labels.get_by_id(label.id)
                if current is not None and current.status != LabelStatus.PAUSED:
                    current.mark_complete()
                    await labels.update(current)
            logger.info(f"Label {label.id} crawl complete")
        return StepResult(True, "Complete", StepOutcome.COMPLETE)

    async def _process_release(self, user_id: str, label: Label, release: Release) -> StepResult:
        detail = await self._discogs.fetch_release(user_id, release.id)

        async with self._database.session_scope() as session:
            tracks = await TrackRepository(session, user_id).replace_for_release(
                release.id, tracks_from_tracklist(user_id, release.id, detail)
            )
            if release.catno is None and detail.catno:
                release.catno = detail.catno
            if release.year is None and detail.year:
                release.year = detail.year
            await ReleaseRepository(session, user_id).update_processing_result(release)
            await ReleaseSignalsRepository(session, user_id).upsert(
                build_release_signals(detail, release)
            )

        candidates = await self._cascade.seed_candidates(user_id, release, tracks, detail)
        track_errors = await self._search_unmatched(
            user_id, release, tracks, candidates, detail.label_name or label.name
        )

        matched = 0
        async with self._database.session_scope() as session:
            matches = VideoMatchRepository(session, user_id)
            queue = QueueItemRepository(session, user_id)
            for track in tracks:
                ranked = candidates.get(track.id or 0) or []
                if track.id is None or not ranked:
                    continue
                matched += 1
                await matches.replace_for_track(track.id, ranked)
                top = ranked[0]
                await queue.add_pending_if_absent(
                    QueueItem(
                        video_id=top.video_id,
                        user_id=user_id,
                        source=top.source.queue_source,
                        track_id=track.id,
                        release_id=release.id,
                        label_id=label.id,
                    )
                )

        weak = len(tracks) - matched
        await self._escalator.escalate(user_id, release, len(tracks), weak, detail)

        # Only now is the release done. If anything above raised, it stays pending and the
        # next step after a requeue processes it again from scratch.
        async with self._database.session_scope() as session:
            release.mark_detailed()
            release.record_match_outcome(matched, len(tracks))
            release.processing_error = (
                "; ".join(track_errors)[: self.settings.crawl.error_message_limit]
                if track_errors
                else None
            )
            await ReleaseRepository(session, user_id).update_processing_result(release)

            labels = LabelRepository(session, user_id)
            current = await labels.get_by_id(label.id)
            if current is not None and current.status != LabelStatus.PAUSED:
                current.mark_processing()
                await labels.update(current)

        logger.info(
            f"Label {label.id}: release {release.id} '{release.title}' processed, "
            f"{matched}/{len(tracks)} track(s) matched"
        )
        return StepResult(
            False, f"Processed release {release.title}", StepOutcome.PROCESSED_RELEASE
        )

    async def _search_unmatched(
        self,
        user_id: str,
        release: Release,
        tracks: Sequence[Track],
        candidates: CandidateMap,
        label_name: str | None,
    ) -> list[str]:
        """Keyword stage for tracks the seeded stages missed (only when enabled).

        Mutates candidates in place. Returns per-track error messages; a failed track
        just stays weak, except for fatal configuration errors which propagate.
        """
        if not self.settings.crawl.search_unmatched_tracks:
            return []

        errors: list[str] = []
        for track in tracks:
            if track.id is None or candidates.get(track.id):
                continue
            try:
                ranked = await self._cascade.keyword_candidates(user_id, track, release, label_name)
            except DomainException as e:
                if is_fatal_config_error(e):
                    raise
                logger.warning(f"Keyword search failed for track {track.id}: {e}")
                errors.append(f"Track match issue: {e}")
                continue
            confident = [c for c in ranked if c.score >= self.settings.crawl.keyword_min_score]
            if confident:
                candidates[track.id] = confident
        return errors

    async def _record_failure(self, user_id: str, label_id: int, error: Exception) -> StepResult:
        limit = self.settings.crawl.error_message_limit
        message = str(error) or error.__class__.__name__

        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is not None:
                if label.status == LabelStatus.PAUSED:
                    label.last_error = message[:limit]
                else:
                    # another request may have completed the label while we were waiting
                    if not label.status.can_transition_to(LabelStatus.ERROR):
                        label.mark_processing()
                    label.fail(message, limit)
                await labels.update(label)

        return StepResult(False, f"Error: {message[:limit]}", StepOutcome.ERROR)


__all__ = ["LabelIngestionService", "StepOutcome", "StepResult", "tracks_from_tracklist"]
