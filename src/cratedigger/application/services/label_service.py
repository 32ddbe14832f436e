"""Label management: adding, activating, retrying, deleting, and wantlist sync."""

import logging
from dataclasses import dataclass

from cratedigger.domain.dtos import WantItem
from cratedigger.domain.entities import Label, LabelStatus, Release, Track
from cratedigger.domain.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
    is_fatal_config_error,
)
from cratedigger.domain.value_objects import TagSet, parse_label_id, to_stored_id
from cratedigger.infrastructure.integrations.discogs_client import DiscogsClient
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    ReleaseRepository,
    TrackRepository,
)

logger = logging.getLogger(__name__)

NOTABLE_RELEASES = 4
NOTABLE_PAGE_SIZE = 24
WANTLIST_IMPORT_SOURCE = "discogs_want"


def label_url(external_id: int) -> str:
    return f"https://www.discogs.com/label/{external_id}"


def notable_titles(titles: list[str], limit: int = NOTABLE_RELEASES) -> TagSet:
    """First distinct non-blank titles, in catalog order."""
    return TagSet.of(title.strip() for title in titles if title.strip()).take(limit)


@dataclass(frozen=True)
class WantlistSyncResult:
    """Counts reported by sync_wantlist()."""

    wanted: int
    flagged: int
    imported: int


class LabelService:
    """User-facing label operations.

    Hey future me - labels are stored under tenant-scoped ids (see catalog_ids). Everything
    here takes and returns STORED ids; the Discogs client converts back on its own.
    """

    def __init__(self, database: Database, discogs: DiscogsClient) -> None:
        self._database = database
        self._discogs = discogs

    async def _require(self, user_id: str, label_id: int) -> Label:
        async with self._database.session_scope() as session:
            label = await LabelRepository(session, user_id).get_by_id(label_id)
        if label is None:
            raise EntityNotFoundException("Label", label_id)
        return label

    async def list_labels(self, user_id: str) -> list[Label]:
        async with self._database.session_scope() as session:
            return await LabelRepository(session, user_id).list_all()

    async def add_label(self, user_id: str, text: str) -> Label:
        """Add a label from a numeric id, a discogs.com/label URL, or a search term.

        A new label starts inactive and queued. Adding a label that already exists
        re-queues it. Metadata is refreshed best-effort afterwards.

        Raises:
            ValidationException: Empty input, or the search found nothing
        """
        raw = text.strip()
        if not raw:
            raise ValidationException("Label id, URL or name is required")

        external_id = parse_label_id(raw)
        name = f"Label {external_id}"
        if external_id is None:
            results = await self._discogs.search_labels(user_id, raw)
            if not results:
                raise ValidationException(f"No label found for '{raw}'")
            external_id, name = results[0].id, results[0].title

        stored_id = to_stored_id(user_id, external_id, "label")
        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            existing = await labels.get_by_id(stored_id)
            if existing is None:
                await labels.add(
                    Label(
                        id=stored_id,
                        user_id=user_id,
                        name=name,
                        discogs_url=label_url(external_id),
                    )
                )
                logger.info(f"Label {external_id} added for user {user_id}")
            else:
                existing.transition_to(LabelStatus.QUEUED)
                existing.last_error = None
                await labels.update(existing)

        try:
            return await self.refresh_metadata(user_id, stored_id)
        except (ExternalServiceError, ConfigurationError) as e:
            if is_fatal_config_error(e):
                raise
            logger.warning(f"Metadata refresh for label {external_id} skipped: {e}")
            return await self._require(user_id, stored_id)

    async def refresh_metadata(self, user_id: str, label_id: int) -> Label:
        """Pull name, blurb, image and a few notable release titles from Discogs."""
        await self._require(user_id, label_id)
        profile = await self._discogs.fetch_label_profile(user_id, label_id)
        first_page = await self._discogs.fetch_label_releases(
            user_id, label_id, page=1, per_page=NOTABLE_PAGE_SIZE
        )

        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is None:
                raise EntityNotFoundException("Label", label_id)
            if profile.name:
                label.name = profile.name
            label.blurb = profile.blurb
            label.image_url = profile.image_url
            label.notable_releases = notable_titles([item.title for item in first_page.releases])
            await labels.update(label)
        return label

    async def set_active(self, user_id: str, label_id: int, active: bool) -> Label:
        """Toggle whether a label crawls and plays.

        Complete labels stay complete either way. Otherwise activating re-queues the
        label (clearing last_error) and deactivating pauses it. An errored label keeps
        its error status when deactivated - error can't move to paused, and inactive
        already keeps the poller away.
        """
        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is None:
                raise EntityNotFoundException("Label", label_id)

            label.active = active
            if label.status != LabelStatus.COMPLETE:
                if active:
                    label.transition_to(LabelStatus.QUEUED)
                    label.last_error = None
                elif label.status != LabelStatus.ERROR:
                    label.pause()
            await labels.update(label)
        logger.info(f"Label {label_id} {'activated' if active else 'deactivated'} ({label.status.value})")
        return label

    async def pause(self, user_id: str, label_id: int) -> Label:
        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is None:
                raise EntityNotFoundException("Label", label_id)
            label.pause()
            await labels.update(label)
        return label

    async def requeue(self, user_id: str, label_id: int) -> Label:
        """Manual retry: back to queued with a clean error slate."""
        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            label = await labels.get_by_id(label_id)
            if label is None:
                raise EntityNotFoundException("Label", label_id)
            label.requeue()
            await labels.update(label)
        logger.info(f"Label {label_id} requeued")
        return label

    async def requeue_errored(self, user_id: str) -> int:
        """Requeue every active label sitting in error. Returns how many moved."""
        moved = 0
        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            for label in await labels.list_all():
                if label.active and label.status == LabelStatus.ERROR:
                    label.requeue()
                    await labels.update(label)
                    moved += 1
        return moved

    async def delete_label(self, user_id: str, label_id: int) -> None:
        """Delete a label with its releases, tracks, matches and queue items."""
        async with self._database.session_scope() as session:
            deleted = await LabelRepository(session, user_id).delete(label_id)
        if not deleted:
            raise EntityNotFoundException("Label", label_id)
        logger.info(f"Label {label_id} deleted")

    async def toggle_release_wishlist(self, user_id: str, release_id: int) -> bool:
        """Flip a release's wishlist flag and mirror it to the Discogs wantlist.

        Local state wins: if Discogs refuses, the flag is still flipped locally.

        Returns:
            The new wishlist value
        """
        async with self._database.session_scope() as session:
            releases = ReleaseRepository(session, user_id)
            release = await releases.get_by_id(release_id)
            if release is None:
                raise EntityNotFoundException("Release", release_id)
            release.wishlist = not release.wishlist
            await releases.update(release)

        try:
            await self._discogs.set_wishlist(user_id, release_id, release.wishlist)
        except (ExternalServiceError, ConfigurationError) as e:
            logger.warning(f"Wantlist sync for release {release_id} failed, kept local state: {e}")
        return release.wishlist

    async def sync_wantlist(self, user_id: str) -> WantlistSyncResult:
        """Mirror the Discogs wantlist into local wishlist flags.

        Known releases get wishlist=True (everything else False). Wanted releases we don't
        have yet are imported under their label - which is created inactive and complete
        if missing - as detailed releases with one placeholder track, so they can be
        queued on demand.
        """
        wants = await self._discogs.fetch_want_items(user_id)
        stored = {to_stored_id(user_id, want.release_id, "release"): want for want in wants}

        async with self._database.session_scope() as session:
            releases = ReleaseRepository(session, user_id)
            known = set(await releases.list_ids())
            flagged = await releases.set_wishlist_flags(set(stored) & known)

        missing = [(release_id, want) for release_id, want in stored.items() if release_id not in known]
        imported = 0
        for order, (release_id, want) in enumerate(missing):
            label_ref = await self._resolve_want_label(user_id, want)
            if label_ref is None:
                logger.info(f"Wanted release {want.release_id} has no resolvable label, skipped")
                continue
            if await self._import_want(user_id, release_id, want, label_ref, order):
                imported += 1

        logger.info(
            f"Wantlist synced for user {user_id}: {len(wants)} wanted, "
            f"{flagged} flagged, {imported} imported"
        )
        return WantlistSyncResult(wanted=len(wants), flagged=flagged, imported=imported)

    async def _resolve_want_label(self, user_id: str, want: WantItem) -> tuple[int, str] | None:
        if want.label_id:
            return want.label_id, want.label_name or f"Label {want.label_id}"
        try:
            detail = await self._discogs.fetch_release(user_id, want.release_id)
        except ExternalServiceError as e:
            if is_fatal_config_error(e):
                raise
            logger.warning(f"Could not resolve label of wanted release {want.release_id}: {e}")
            return None
        if not detail.label_id:
            return None
        return detail.label_id, detail.label_name or f"Label {detail.label_id}"

    async def _import_want(
        self,
        user_id: str,
        release_id: int,
        want: WantItem,
        label_ref: tuple[int, str],
        order: int,
    ) -> bool:
        external_label_id, label_name = label_ref
        label_id = to_stored_id(user_id, external_label_id, "label")

        async with self._database.session_scope() as session:
            labels = LabelRepository(session, user_id)
            if await labels.get_by_id(label_id) is None:
                await labels.add(
                    Label(
                        id=label_id,
                        user_id=user_id,
                        name=label_name,
                        discogs_url=label_url(external_label_id),
                        status=LabelStatus.COMPLETE,
                    )
                )

            releases = ReleaseRepository(session, user_id)
            if await releases.existing_ids([release_id]):
                return False
            await releases.add(
                Release(
                    id=release_id,
                    user_id=user_id,
                    label_id=label_id,
                    title=want.title,
                    artist=want.artist,
                    catno=want.catno,
                    discogs_url=want.discogs_url,
                    thumb_url=want.thumb_url,
                    details_fetched=True,
                    wishlist=True,
                    release_order=order,
                    import_source=WANTLIST_IMPORT_SOURCE,
                )
            )
            await TrackRepository(session, user_id).add(
                Track(
                    release_id=release_id,
                    user_id=user_id,
                    position="",
                    title=want.title,
                    artists_text=want.artist,
                )
            )
        return True


__all__ = ["LabelService", "WantlistSyncResult", "label_url", "notable_titles"]
