"""Shared test fixtures.

Hey future me - every test gets its own in-memory SQLite database (StaticPool, so all
sessions see the same connection) with tables created. `seed` writes labels/releases/tracks
through the real repositories, so fixtures can never drift from what the services write.
"""

from collections.abc import AsyncGenerator, Sequence

import pytest

from cratedigger.config import CrawlSettings, DatabaseSettings, Settings
from cratedigger.domain.entities import (
    Label,
    LabelStatus,
    QueueItem,
    QueueSource,
    Release,
    Track,
    VideoCandidate,
    VideoMatch,
)
from cratedigger.domain.value_objects import to_stored_id
from cratedigger.infrastructure.persistence import (
    Database,
    LabelRepository,
    QueueItemRepository,
    ReleaseRepository,
    TrackRepository,
    VideoMatchRepository,
)

USER = "alice"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        crawl=CrawlSettings(poll_interval_seconds=0.01),
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    await db.create_tables()
    yield db
    await db.close()


class Seeder:
    """Writes test rows through the repositories."""

    def __init__(self, database: Database, user_id: str = USER) -> None:
        self.database = database
        self.user_id = user_id

    async def label(
        self,
        external_id: int = 100,
        *,
        active: bool = True,
        status: LabelStatus = LabelStatus.QUEUED,
        current_page: int = 1,
        total_pages: int = 1,
        name: str = "Test Label",
    ) -> Label:
        label = Label(
            id=to_stored_id(self.user_id, external_id, "label"),
            user_id=self.user_id,
            name=name,
            discogs_url=f"https://www.discogs.com/label/{external_id}",
            active=active,
            status=status,
            current_page=current_page,
            total_pages=total_pages,
        )
        async with self.database.session_scope() as session:
            await LabelRepository(session, self.user_id).add(label)
        return label

    async def release(
        self,
        label: Label,
        external_id: int = 500,
        *,
        title: str = "Some EP",
        artist: str = "Artist",
        details_fetched: bool = False,
        release_order: int = 0,
    ) -> Release:
        release = Release(
            id=to_stored_id(self.user_id, external_id, "release"),
            user_id=self.user_id,
            label_id=label.id,
            title=title,
            artist=artist,
            discogs_url=f"https://www.discogs.com/release/{external_id}",
            details_fetched=details_fetched,
            release_order=release_order,
        )
        async with self.database.session_scope() as session:
            await ReleaseRepository(session, self.user_id).add(release)
        return release

    async def tracks(self, release: Release, titles: Sequence[str]) -> list[Track]:
        async with self.database.session_scope() as session:
            return await TrackRepository(session, self.user_id).replace_for_release(
                release.id,
                [
                    Track(release_id=release.id, user_id=self.user_id, position=f"A{n}", title=title)
                    for n, title in enumerate(titles, start=1)
                ],
            )

    async def matches(self, track: Track, candidates: Sequence[VideoCandidate]) -> list[VideoMatch]:
        assert track.id is not None
        async with self.database.session_scope() as session:
            return await VideoMatchRepository(session, self.user_id).replace_for_track(
                track.id, candidates
            )

    async def queue_item(
        self,
        video_id: str,
        *,
        track: Track | None = None,
        release: Release | None = None,
        label: Label | None = None,
        source: QueueSource = QueueSource.CATALOG_TRACK_VIDEO,
        priority: int = 0,
    ) -> QueueItem:
        async with self.database.session_scope() as session:
            return await QueueItemRepository(session, self.user_id).add(
                QueueItem(
                    video_id=video_id,
                    user_id=self.user_id,
                    source=source,
                    track_id=track.id if track else None,
                    release_id=release.id if release else None,
                    label_id=label.id if label else None,
                    priority=priority,
                )
            )


@pytest.fixture
def seed(database: Database) -> Seeder:
    return Seeder(database)
