"""Tests for LabelService."""

from unittest.mock import AsyncMock

import pytest

from cratedigger.application.services import LabelService, WantlistSyncResult
from cratedigger.application.services.label_service import notable_titles
from cratedigger.domain.dtos import (
    LabelProfile,
    LabelReleasePage,
    LabelReleaseSummary,
    LabelSearchResult,
    ReleaseDetail,
    WantItem,
)
from cratedigger.domain.entities import LabelStatus
from cratedigger.domain.exceptions import (
    EntityNotFoundException,
    FatalConfigurationError,
    InvalidStateException,
    RetriesExhaustedError,
    ValidationException,
)
from cratedigger.domain.value_objects import to_stored_id
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    ReleaseRepository,
    TrackRepository,
)

USER = "alice"


def want(release_id: int, label_id: int | None = None, label_name: str | None = None) -> WantItem:
    return WantItem(
        release_id=release_id,
        title=f"Wanted {release_id}",
        artist="Someone",
        discogs_url=f"https://www.discogs.com/release/{release_id}",
        label_id=label_id,
        label_name=label_name,
    )


def test_notable_titles_keeps_catalog_order() -> None:
    titles = ["One", " ", "Two", "One", "Three", "Four", "Five"]
    assert list(notable_titles(titles)) == ["One", "Two", "Three", "Four"]


class TestAddLabel:
    async def test_numeric_id_creates_inactive_queued_label(
        self, label_service: LabelService, discogs: AsyncMock
    ) -> None:
        discogs.fetch_label_profile.return_value = LabelProfile(name="Warp", blurb="Sheffield")
        discogs.fetch_label_releases.return_value = LabelReleasePage(
            releases=[LabelReleaseSummary(id=1, title="Artificial Intelligence")], page=1, pages=3
        )

        label = await label_service.add_label(USER, " 100 ")

        assert label.id == to_stored_id(USER, 100, "label")
        assert (label.name, label.blurb) == ("Warp", "Sheffield")
        assert label.active is False
        assert label.status == LabelStatus.QUEUED
        assert list(label.notable_releases) == ["Artificial Intelligence"]
        discogs.search_labels.assert_not_called()

    async def test_url_input(self, label_service: LabelService) -> None:
        label = await label_service.add_label(USER, "https://www.discogs.com/label/123-Some-Label")

        assert label.id == to_stored_id(USER, 123, "label")
        assert label.discogs_url == "https://www.discogs.com/label/123"

    async def test_search_term_uses_first_result(
        self, label_service: LabelService, discogs: AsyncMock
    ) -> None:
        discogs.search_labels.return_value = [
            LabelSearchResult(id=42, title="Warp Records"),
            LabelSearchResult(id=43, title="Warped"),
        ]

        label = await label_service.add_label(USER, "warp")

        assert label.id == to_stored_id(USER, 42, "label")
        assert label.name == "Warp Records"

    async def test_search_without_results(
        self, label_service: LabelService, discogs: AsyncMock
    ) -> None:
        discogs.search_labels.return_value = []

        with pytest.raises(ValidationException):
            await label_service.add_label(USER, "nothing like this")

    async def test_blank_input(self, label_service: LabelService) -> None:
        with pytest.raises(ValidationException):
            await label_service.add_label(USER, "   ")

    async def test_existing_label_is_requeued(self, label_service: LabelService, seed) -> None:
        await seed.label(100, status=LabelStatus.ERROR)

        label = await label_service.add_label(USER, "100")

        assert label.status == LabelStatus.QUEUED
        assert label.last_error is None

    async def test_metadata_failure_still_adds(
        self, label_service: LabelService, discogs: AsyncMock
    ) -> None:
        discogs.fetch_label_profile.side_effect = RetriesExhaustedError("discogs", 4, 503)

        label = await label_service.add_label(USER, "100")

        assert label.name == "Label 100"

    async def test_fatal_credential_error_propagates(
        self, label_service: LabelService, discogs: AsyncMock
    ) -> None:
        discogs.fetch_label_profile.side_effect = FatalConfigurationError("discogs", "bad token")

        with pytest.raises(FatalConfigurationError):
            await label_service.add_label(USER, "100")


class TestLabelState:
    async def test_deactivate_then_activate(self, label_service: LabelService, seed) -> None:
        label = await seed.label()

        paused = await label_service.set_active(USER, label.id, False)
        resumed = await label_service.set_active(USER, label.id, True)

        assert (paused.active, paused.status) == (False, LabelStatus.PAUSED)
        assert (resumed.active, resumed.status) == (True, LabelStatus.QUEUED)

    async def test_complete_label_stays_complete(self, label_service: LabelService, seed) -> None:
        label = await seed.label(active=False, status=LabelStatus.COMPLETE)

        updated = await label_service.set_active(USER, label.id, True)

        assert (updated.active, updated.status) == (True, LabelStatus.COMPLETE)

    async def test_errored_label_keeps_error_when_deactivated(
        self, label_service: LabelService, seed
    ) -> None:
        label = await seed.label(status=LabelStatus.ERROR)

        updated = await label_service.set_active(USER, label.id, False)

        assert (updated.active, updated.status) == (False, LabelStatus.ERROR)

    async def test_pause_and_requeue(self, label_service: LabelService, seed) -> None:
        label = await seed.label()

        assert (await label_service.pause(USER, label.id)).status == LabelStatus.PAUSED
        assert (await label_service.requeue(USER, label.id)).status == LabelStatus.QUEUED

    async def test_pause_rejects_complete_label(self, label_service: LabelService, seed) -> None:
        label = await seed.label(status=LabelStatus.COMPLETE)

        with pytest.raises(InvalidStateException):
            await label_service.pause(USER, label.id)

    async def test_requeue_errored_only_touches_active_labels(
        self, label_service: LabelService, seed, database: Database
    ) -> None:
        active = await seed.label(100, status=LabelStatus.ERROR)
        inactive = await seed.label(101, active=False, status=LabelStatus.ERROR)
        await seed.label(102)

        assert await label_service.requeue_errored(USER) == 1

        async with database.session_scope() as session:
            labels = LabelRepository(session, USER)
            assert (await labels.get_by_id(active.id)).status == LabelStatus.QUEUED
            assert (await labels.get_by_id(inactive.id)).status == LabelStatus.ERROR

    async def test_unknown_label(self, label_service: LabelService) -> None:
        with pytest.raises(EntityNotFoundException):
            await label_service.set_active(USER, 1, True)
        with pytest.raises(EntityNotFoundException):
            await label_service.delete_label(USER, 1)

    async def test_delete_removes_label_and_releases(
        self, label_service: LabelService, seed, database: Database
    ) -> None:
        label = await seed.label()
        release = await seed.release(label)

        await label_service.delete_label(USER, label.id)

        async with database.session_scope() as session:
            assert await LabelRepository(session, USER).get_by_id(label.id) is None
            assert await ReleaseRepository(session, USER).get_by_id(release.id) is None


class TestWantlist:
    async def test_toggle_keeps_local_state_when_remote_fails(
        self, label_service: LabelService, seed, discogs: AsyncMock
    ) -> None:
        release = await seed.release(await seed.label())
        discogs.set_wishlist.side_effect = RetriesExhaustedError("discogs", 4, 500)

        assert await label_service.toggle_release_wishlist(USER, release.id) is True
        discogs.set_wishlist.assert_awaited_once_with(USER, release.id, True)

    async def test_toggle_unknown_release(self, label_service: LabelService) -> None:
        with pytest.raises(EntityNotFoundException):
            await label_service.toggle_release_wishlist(USER, 1)

    async def test_sync_flags_and_imports(
        self, label_service: LabelService, seed, discogs: AsyncMock, database: Database
    ) -> None:
        label = await seed.label()
        wanted = await seed.release(label, 500)
        unwanted = await seed.release(label, 501)
        discogs.fetch_want_items.return_value = [
            want(500),
            want(700, label_id=200, label_name="Other Label"),
            want(800),
        ]
        # release 800 has no label anywhere, so it's skipped
        discogs.fetch_release.return_value = ReleaseDetail(id=800, title="Orphan")

        result = await label_service.sync_wantlist(USER)

        assert result == WantlistSyncResult(wanted=3, flagged=1, imported=1)
        imported_id = to_stored_id(USER, 700, "release")
        async with database.session_scope() as session:
            releases = ReleaseRepository(session, USER)
            assert (await releases.get_by_id(wanted.id)).wishlist is True
            assert (await releases.get_by_id(unwanted.id)).wishlist is False
            imported = await releases.get_by_id(imported_id)
            other = await LabelRepository(session, USER).get_by_id(to_stored_id(USER, 200, "label"))
            tracks = await TrackRepository(session, USER).list_for_release(imported_id)

        assert imported.details_fetched and imported.wishlist
        assert imported.import_source == "discogs_want"
        assert (other.name, other.active, other.status) == ("Other Label", False, LabelStatus.COMPLETE)
        assert [t.title for t in tracks] == ["Wanted 700"]
