"""Tests for the SQLAlchemy repositories (in-memory SQLite)."""

from datetime import UTC, datetime

from cratedigger.domain.dtos import LabelReleaseSummary
from cratedigger.domain.entities import (
    LabelStatus,
    MatchSource,
    PlaybackMode,
    QueueItem,
    QueueSource,
    QueueStatus,
    ReleaseSignals,
    VideoCandidate,
)
from cratedigger.domain.value_objects import TagSet, to_stored_id
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    QueueItemRepository,
    ReleaseRepository,
    ReleaseSignalsRepository,
    TrackRepository,
    VideoMatchRepository,
)


def cand(video_id: str, score: float = 5.0) -> VideoCandidate:
    return VideoCandidate(video_id, f"title {video_id}", "chan", score, MatchSource.CATALOG)


class TestLabelRepository:
    async def test_round_trip(self, database: Database, seed) -> None:
        label = await seed.label(status=LabelStatus.PROCESSING)
        label.notable_releases = TagSet.of(["One", "Two"])
        label.last_error = "boom"

        async with database.session_scope() as session:
            await LabelRepository(session, "alice").update(label)
        async with database.session_scope() as session:
            loaded = await LabelRepository(session, "alice").get_by_id(label.id)

        assert loaded is not None
        assert loaded.status == LabelStatus.PROCESSING
        assert list(loaded.notable_releases) == ["One", "Two"]
        assert loaded.last_error == "boom"

    async def test_other_tenant_cannot_see_label(self, database: Database, seed) -> None:
        label = await seed.label()
        async with database.session_scope() as session:
            assert await LabelRepository(session, "bob").get_by_id(label.id) is None
            assert await LabelRepository(session, "bob").delete(label.id) is False

    async def test_delete_cascades(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["Opener"])
        await seed.matches(track, [cand("AAAAAAAAAAA")])
        await seed.queue_item("AAAAAAAAAAA", track=track, release=release, label=label)

        async with database.session_scope() as session:
            assert await LabelRepository(session, "alice").delete(label.id) is True
        async with database.session_scope() as session:
            assert await ReleaseRepository(session, "alice").get_by_id(release.id) is None
            assert await TrackRepository(session, "alice").get_by_id(track.id) is None
            assert await VideoMatchRepository(session, "alice").list_for_track(track.id) == []
            assert await QueueItemRepository(session, "alice").list_pending() == []


class TestReleaseRepository:
    async def test_page_insert_skips_existing_and_orders(self, database: Database, seed) -> None:
        label = await seed.label()
        await seed.release(label, 2, title="Already here", release_order=99)
        summaries = [
            LabelReleaseSummary(id=1, title="First"),
            LabelReleaseSummary(id=2, title="Second"),
            LabelReleaseSummary(id=3, title="Third"),
        ]
        stored = [to_stored_id("alice", s.id, "release") for s in summaries]

        async with database.session_scope() as session:
            inserted = await ReleaseRepository(session, "alice").insert_page_ignoring_existing(
                label.id, summaries, stored, first_order=100
            )
        async with database.session_scope() as session:
            releases = await ReleaseRepository(session, "alice").list_for_label(label.id)

        assert inserted == 2
        assert [(r.title, r.release_order) for r in releases] == [
            ("Already here", 99),
            ("First", 100),
            ("Third", 102),
        ]

    async def test_next_pending_is_oldest_undetailed(self, database: Database, seed) -> None:
        label = await seed.label()
        await seed.release(label, 1, details_fetched=True, release_order=0)
        await seed.release(label, 3, title="Later", release_order=2)
        second = await seed.release(label, 2, title="Next", release_order=1)

        async with database.session_scope() as session:
            pending = await ReleaseRepository(session, "alice").next_pending(label.id)

        assert pending is not None
        assert pending.id == second.id

    async def test_wishlist_flags_are_exact(self, database: Database, seed) -> None:
        label = await seed.label()
        a = await seed.release(label, 1)
        b = await seed.release(label, 2)
        async with database.session_scope() as session:
            releases = ReleaseRepository(session, "alice")
            old = await releases.get_by_id(b.id)
            assert old is not None
            old.wishlist = True
            await releases.update(old)

        async with database.session_scope() as session:
            flagged = await ReleaseRepository(session, "alice").set_wishlist_flags({a.id})
        async with database.session_scope() as session:
            releases = ReleaseRepository(session, "alice")
            assert flagged == 1
            assert (await releases.get_by_id(a.id)).wishlist is True  # type: ignore[union-attr]
            assert (await releases.get_by_id(b.id)).wishlist is False  # type: ignore[union-attr]

    async def test_processing_result_leaves_user_flags_alone(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        async with database.session_scope() as session:
            releases = ReleaseRepository(session, "alice")
            clicked = await releases.get_by_id(release.id)
            clicked.wishlist = True  # type: ignore[union-attr]
            clicked.listened = True  # type: ignore[union-attr]
            await releases.update(clicked)  # type: ignore[arg-type]

        # stale copy loaded before the clicks
        release.mark_detailed()
        release.record_match_outcome(1, 4)
        release.catno = "CAT9"
        async with database.session_scope() as session:
            await ReleaseRepository(session, "alice").update_processing_result(release)

        async with database.session_scope() as session:
            stored = await ReleaseRepository(session, "alice").get_by_id(release.id)
        assert stored is not None
        assert (stored.details_fetched, stored.match_confidence, stored.catno) == (True, 0.25, "CAT9")
        assert (stored.wishlist, stored.listened) == (True, True)


class TestTrackAndMatchRepositories:
    async def test_replace_tracks_wipes_old_rows(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        await seed.tracks(release, ["Old One", "Old Two"])
        new = await seed.tracks(release, ["New"])

        async with database.session_scope() as session:
            tracks = TrackRepository(session, "alice")
            assert await tracks.count_for_release(release.id) == 1
            assert [t.title for t in await tracks.list_for_release(release.id)] == ["New"]
        assert new[0].id is not None

    async def test_replace_matches_dedups_and_chooses_first(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["Opener"])

        matches = await seed.matches(
            track, [cand("AAAAAAAAAAA", 3), cand("BBBBBBBBBBB", 9), cand("AAAAAAAAAAA", 10)]
        )

        assert [(m.video_id, m.chosen) for m in matches] == [
            ("AAAAAAAAAAA", True),
            ("BBBBBBBBBBB", False),
        ]
        assert matches[0].score == 3

    async def test_empty_replacement_keeps_matches(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["Opener"])
        await seed.matches(track, [cand("AAAAAAAAAAA")])

        assert await seed.matches(track, []) == []
        async with database.session_scope() as session:
            assert len(await VideoMatchRepository(session, "alice").list_for_track(track.id)) == 1

    async def test_choose_keeps_exactly_one_chosen(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["Opener"])
        matches = await seed.matches(track, [cand("AAAAAAAAAAA"), cand("BBBBBBBBBBB")])

        async with database.session_scope() as session:
            await VideoMatchRepository(session, "alice").choose(track.id, matches[1].id)
        async with database.session_scope() as session:
            listed = await VideoMatchRepository(session, "alice").list_for_track(track.id)

        assert [(m.video_id, m.chosen) for m in listed] == [
            ("BBBBBBBBBBB", True),
            ("AAAAAAAAAAA", False),
        ]


class TestQueueItemRepository:
    async def test_add_pending_if_absent(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["Opener"])
        item = QueueItem(
            video_id="AAAAAAAAAAA",
            user_id="alice",
            source=QueueSource.CATALOG_TRACK_VIDEO,
            track_id=track.id,
            release_id=release.id,
            label_id=label.id,
        )

        async with database.session_scope() as session:
            queue = QueueItemRepository(session, "alice")
            first, created = await queue.add_pending_if_absent(item)
            again, created_again = await queue.add_pending_if_absent(item)

        assert created is True
        assert created_again is False
        assert again.id == first.id

    async def test_next_pending_order_and_mode(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [t1, t2] = await seed.tracks(release, ["One", "Two"])
        low = await seed.queue_item("AAAAAAAAAAA", track=t1, release=release, label=label)
        high = await seed.queue_item("BBBBBBBBBBB", track=t2, release=release, label=label, priority=5)
        whole = await seed.queue_item(
            "CCCCCCCCCCC", release=release, label=label, source=QueueSource.RELEASE_FALLBACK, priority=9
        )

        async with database.session_scope() as session:
            queue = QueueItemRepository(session, "alice")
            assert (await queue.next_pending(PlaybackMode.HYBRID)).id == whole.id  # type: ignore[union-attr]
            assert (await queue.next_pending(PlaybackMode.TRACK)).id == high.id  # type: ignore[union-attr]
            assert (await queue.next_pending(PlaybackMode.RELEASE)).id == whole.id  # type: ignore[union-attr]

            # bumped item wins a priority tie
            low.priority = 5
            low.bumped_at = datetime.now(UTC)
            await queue.update(low)
            assert (await queue.next_pending(PlaybackMode.TRACK)).id == low.id  # type: ignore[union-attr]

    async def test_inactive_label_items_are_not_playable(self, database: Database, seed) -> None:
        label = await seed.label(active=False)
        release = await seed.release(label)
        await seed.queue_item("AAAAAAAAAAA", release=release, label=label)

        async with database.session_scope() as session:
            assert await QueueItemRepository(session, "alice").next_pending(PlaybackMode.HYBRID) is None

    async def test_mark_track_played(self, database: Database, seed) -> None:
        label = await seed.label()
        release = await seed.release(label)
        [track] = await seed.tracks(release, ["One"])
        await seed.queue_item("AAAAAAAAAAA", track=track, release=release, label=label)
        await seed.queue_item("BBBBBBBBBBB", track=track, release=release, label=label)

        async with database.session_scope() as session:
            assert await QueueItemRepository(session, "alice").mark_track_played(track.id) == 2
        async with database.session_scope() as session:
            queue = QueueItemRepository(session, "alice")
            assert await queue.list_pending() == []
            assert await queue.max_pending_priority() == 0


async def test_release_signals_upsert(database: Database, seed) -> None:
    label = await seed.label()
    release = await seed.release(label)
    signals = ReleaseSignals(
        release_id=release.id,
        user_id="alice",
        primary_artist="Artist",
        styles=TagSet.of(["Techno"]),
        year=1999,
    )

    async with database.session_scope() as session:
        repo = ReleaseSignalsRepository(session, "alice")
        await repo.upsert(signals)
        signals.styles = TagSet.of(["Techno", "Acid"])
        await repo.upsert(signals)
    async with database.session_scope() as session:
        loaded = await ReleaseSignalsRepository(session, "alice").get_by_release(release.id)

    assert loaded is not None
    assert list(loaded.styles) == ["Techno", "Acid"]
    assert loaded.year == 1999


def test_queue_status_values_are_stable() -> None:
    assert QueueStatus.PENDING.value == "pending"
    assert QueueStatus.PLAYED.value == "played"
