"""Release-level fallback for releases whose tracks mostly failed to match."""

import logging
import math

from cratedigger.config.settings import CrawlSettings
from cratedigger.domain.dtos import ReleaseDetail
from cratedigger.domain.entities import QueueItem, QueueSource, Release
from cratedigger.domain.exceptions import DomainException, is_fatal_config_error
from cratedigger.infrastructure.integrations.discogs_client import DiscogsClient
from cratedigger.infrastructure.persistence import Database, QueueItemRepository

from .match_cascade import MatchCascade, release_video_candidate

logger = logging.getLogger(__name__)


def looks_weak(track_count: int, weak_count: int, ratio: float = 0.6, floor: int = 2) -> bool:
    """True when at least max(floor, ceil(track_count * ratio)) tracks are weak."""
    return track_count > 0 and weak_count >= max(floor, math.ceil(track_count * ratio))


class WeakMatchEscalator:
    """Queues one release-level video when per-track matching mostly failed.

    Hey future me - the weak count is whatever the ingestion step counted at that moment.
    Later on-demand matches don't make a release "less weak" retroactively; the fallback
    item just stays in the queue until played.
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

    async def escalate(
        self,
        user_id: str,
        release: Release,
        track_count: int,
        weak_count: int,
        detail: ReleaseDetail | None = None,
    ) -> QueueItem | None:
        """Insert a pending release_fallback item if the release looks weak.

        Returns:
            The inserted item, or None when not weak, nothing found, or already queued

        Raises:
            FatalConfigurationError: Video provider rejects the key (never swallowed)
        """
        if not looks_weak(track_count, weak_count, self.settings.weak_ratio, self.settings.weak_floor):
            return None

        video_id = await self._find_video(user_id, release, detail)
        if video_id is None:
            logger.info(f"No release-level fallback found for release {release.id}")
            return None

        async with self._database.session_scope() as session:
            queue = QueueItemRepository(session, user_id)
            if await queue.find_pending_release_level(release.id) is not None:
                return None
            item = await queue.add(
                QueueItem(
                    video_id=video_id,
                    user_id=user_id,
                    source=QueueSource.RELEASE_FALLBACK,
                    track_id=None,
                    release_id=release.id,
                    label_id=release.label_id,
                )
            )
        logger.info(
            f"Release {release.id} looks weak ({weak_count}/{track_count}), "
            f"queued fallback video {video_id}"
        )
        return item

    async def _find_video(
        self, user_id: str, release: Release, detail: ReleaseDetail | None
    ) -> str | None:
        try:
            if detail is None:
                detail = await self._discogs.fetch_release(user_id, release.id)
            fallback = release_video_candidate(detail.videos, self.settings.release_video_score)
            if fallback is not None:
                return fallback.video_id
            return await self._cascade.release_search(user_id, release)
        except DomainException as e:
            if is_fatal_config_error(e):
                raise
            logger.warning(f"Release fallback search failed for release {release.id}: {e}")
            return None


__all__ = ["WeakMatchEscalator", "looks_weak"]
