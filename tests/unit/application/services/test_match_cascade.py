"""Tests for the track → video match cascade."""

from unittest.mock import AsyncMock

import httpx
import pytest

from cratedigger.application.services.match_cascade import (
    MatchCascade,
    ScoredPair,
    assign_greedy,
    catalog_candidates,
    release_video_candidate,
    storefront_candidates,
)
from cratedigger.config import CrawlSettings
from cratedigger.domain.dtos import ReleaseDetail, ReleaseVideo, VideoSearchItem
from cratedigger.domain.entities import MatchSource, Release, Track, VideoCandidate
from cratedigger.domain.ports import IStorefrontLinkFinder, IStorefrontScraper
from cratedigger.infrastructure.integrations import YouTubeClient


def track(track_id: int, title: str) -> Track:
    return Track(release_id=1, user_id="alice", position=str(track_id), title=title, id=track_id)


def candidate(video_id: str, score: float) -> VideoCandidate:
    return VideoCandidate(video_id, video_id, "chan", score, MatchSource.CATALOG)


def yt(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


RELEASE = Release(id=1, user_id="alice", label_id=7, title="Some EP", discogs_url="u", artist="Artist")


class TestAssignGreedy:
    def test_best_score_wins_and_videos_are_used_once(self) -> None:
        pairs = [
            ScoredPair(1, candidate("v1", 8)),
            ScoredPair(2, candidate("v1", 10)),
            ScoredPair(1, candidate("v2", 5)),
        ]
        assigned = assign_greedy(pairs, threshold=3)
        assert assigned[2].video_id == "v1"
        assert assigned[1].video_id == "v2"

    def test_below_threshold_is_dropped(self) -> None:
        assert assign_greedy([ScoredPair(1, candidate("v1", 2))], threshold=3) == {}


class TestCatalogCandidates:
    def test_videos_are_mapped_by_title(self) -> None:
        tracks = [track(1, "Opener"), track(2, "Closer")]
        videos = [
            ReleaseVideo(yt("BBBBBBBBBBB"), "Artist - Closer"),
            ReleaseVideo(yt("AAAAAAAAAAA"), "Artist - Opener (Original Mix)"),
            ReleaseVideo("https://vimeo.com/1", "Opener"),
        ]

        result = catalog_candidates(tracks, videos, threshold=3)

        assert result[1][0].video_id == "AAAAAAAAAAA"
        assert result[2][0].video_id == "BBBBBBBBBBB"
        assert result[1][0].source == MatchSource.CATALOG

    def test_unrelated_video_is_not_assigned(self) -> None:
        result = catalog_candidates([track(1, "Opener")], [ReleaseVideo(yt("AAAAAAAAAAA"), "Promo")], 3)
        assert result == {}


class TestStorefrontCandidates:
    def test_title_goes_to_best_track(self) -> None:
        tracks = [track(1, "Opener"), track(2, "Closer")]
        scraped = [("Closer", ["AAAAAAAAAAA", "BBBBBBBBBBB", "AAAAAAAAAAA"]), ("Closer", [])]

        result = storefront_candidates(tracks, scraped, threshold=3, score=9)

        assert list(result) == [2]
        assert [c.video_id for c in result[2]] == ["AAAAAAAAAAA", "BBBBBBBBBBB"]
        assert all(c.score == 9 and c.source == MatchSource.STOREFRONT for c in result[2])

    def test_weak_title_is_ignored(self) -> None:
        assert storefront_candidates([track(1, "Opener")], [("Bonus Beat", ["AAAAAAAAAAA"])], 3, 9) == {}


def test_release_video_candidate_takes_first_youtube_link() -> None:
    videos = [ReleaseVideo("https://vimeo.com/1"), ReleaseVideo(yt("AAAAAAAAAAA"), "")]
    result = release_video_candidate(videos, score=2)
    assert result is not None
    assert result.video_id == "AAAAAAAAAAA"
    assert result.source == MatchSource.RELEASE_VIDEO
    assert release_video_candidate([], score=2) is None


class TestMatchCascade:
    @pytest.fixture
    def link_finder(self) -> AsyncMock:
        finder = AsyncMock(spec=IStorefrontLinkFinder)
        finder.find_best_storefront.return_value = "https://x.bandcamp.test/album/ep"
        return finder

    @pytest.fixture
    def scraper(self) -> AsyncMock:
        return AsyncMock(spec=IStorefrontScraper)

    @pytest.fixture
    def youtube(self) -> AsyncMock:
        return AsyncMock(spec=YouTubeClient)

    @pytest.fixture
    def cascade(self, link_finder: AsyncMock, scraper: AsyncMock, youtube: AsyncMock) -> MatchCascade:
        return MatchCascade(CrawlSettings(), link_finder, scraper, youtube)

    async def test_storefront_skipped_when_catalog_covers_all(
        self, cascade: MatchCascade, link_finder: AsyncMock
    ) -> None:
        detail = ReleaseDetail(id=1, title="EP", videos=[ReleaseVideo(yt("AAAAAAAAAAA"), "Opener")])

        seeded = await cascade.seed_candidates("alice", RELEASE, [track(1, "Opener")], detail)

        assert seeded[1][0].video_id == "AAAAAAAAAAA"
        link_finder.find_best_storefront.assert_not_called()

    async def test_storefront_fills_gaps_only(
        self, cascade: MatchCascade, scraper: AsyncMock
    ) -> None:
        detail = ReleaseDetail(id=1, title="EP", videos=[ReleaseVideo(yt("AAAAAAAAAAA"), "Opener")])
        scraper.scrape_track_videos.return_value = [
            ("Opener", ["CCCCCCCCCCC"]),
            ("Closer", ["BBBBBBBBBBB"]),
        ]

        seeded = await cascade.seed_candidates(
            "alice", RELEASE, [track(1, "Opener"), track(2, "Closer")], detail
        )

        assert [c.video_id for c in seeded[1]] == ["AAAAAAAAAAA"]
        assert [c.video_id for c in seeded[2]] == ["BBBBBBBBBBB"]

    async def test_storefront_failure_is_quiet(
        self, cascade: MatchCascade, scraper: AsyncMock
    ) -> None:
        scraper.scrape_track_videos.side_effect = httpx.ConnectError("down")

        seeded = await cascade.seed_candidates(
            "alice", RELEASE, [track(1, "Opener")], ReleaseDetail(id=1, title="EP")
        )

        assert seeded == {}

    async def test_keyword_candidates_are_ranked(
        self, cascade: MatchCascade, youtube: AsyncMock
    ) -> None:
        youtube.search.return_value = [
            VideoSearchItem("AAAAAAAAAAA", "something else", "c"),
            VideoSearchItem("BBBBBBBBBBB", "Artist - Opener", "c"),
        ]

        ranked = await cascade.keyword_candidates("alice", track(1, "Opener"), RELEASE, "Label")

        assert [c.video_id for c in ranked] == ["BBBBBBBBBBB", "AAAAAAAAAAA"]
        youtube.search.assert_awaited_once_with("alice", "Artist - Opener Label")

    async def test_release_search(self, cascade: MatchCascade, youtube: AsyncMock) -> None:
        youtube.search.return_value = [VideoSearchItem("AAAAAAAAAAA", "t", "c")]
        assert await cascade.release_search("alice", RELEASE) == "AAAAAAAAAAA"
        youtube.search.assert_awaited_once_with("alice", "Artist Some EP full album")
