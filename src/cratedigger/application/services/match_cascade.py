"""Track → video match cascade.

Hey future me - for each track we try the sources in a FIXED order and stop at the first one
that yields anything for that track:

    1. catalog-embedded videos  (Discogs release "videos", greedy title assignment, >= 3)
    2. storefront scrape        (Bandcamp album page, title mapped to a track, fixed score 9)
    3. keyword search           (YouTube search.list - costs quota!)
    4. release video            (any Discogs release video, fixed score 2, play-time only)

Stages 1 and 2 are "seeded" matches: free, artist-approved, high confidence. Stage 3 is only
run at ingestion when crawl.search_unmatched_tracks is on; at play-time the PlaybackService
runs it as the very last resort.

The stage functions at the top of this module are pure (no I/O) so the assignment logic is
unit-tested without database or HTTP.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx

from cratedigger.config.settings import CrawlSettings
from cratedigger.domain.dtos import ReleaseDetail, ReleaseVideo
from cratedigger.domain.entities import MatchSource, Release, Track, VideoCandidate
from cratedigger.domain.exceptions import ExternalServiceError
from cratedigger.domain.ports import IStorefrontLinkFinder, IStorefrontScraper
from cratedigger.domain.value_objects import extract_youtube_video_id, score_title_match
from cratedigger.infrastructure.integrations.youtube_client import (
    YouTubeClient,
    build_query,
    score_match,
)

logger = logging.getLogger(__name__)

CATALOG_CHANNEL = "Discogs"
CATALOG_DEFAULT_TITLE = "Discogs release video"
STOREFRONT_CHANNEL = "Bandcamp"

CandidateMap = dict[int, list[VideoCandidate]]


@dataclass(frozen=True)
class ScoredPair:
    """One (track, candidate) pairing with the candidate's score."""

    track_id: int
    candidate: VideoCandidate


def assign_greedy(pairs: Iterable[ScoredPair], threshold: float) -> dict[int, VideoCandidate]:
    """Greedy one-to-one assignment of candidates to tracks.

    Pairs below the threshold are dropped, the rest are taken best score first (ties keep
    input order). A track gets at most one candidate and a video goes to at most one track.
    """
    qualifying = sorted(
        (pair for pair in pairs if pair.candidate.score >= threshold),
        key=lambda pair: pair.candidate.score,
        reverse=True,
    )
    assigned: dict[int, VideoCandidate] = {}
    used_videos: set[str] = set()
    for pair in qualifying:
        if pair.track_id in assigned or pair.candidate.video_id in used_videos:
            continue
        assigned[pair.track_id] = pair.candidate
        used_videos.add(pair.candidate.video_id)
    return assigned


def catalog_candidates(
    tracks: Sequence[Track], videos: Sequence[ReleaseVideo], threshold: float
) -> CandidateMap:
    """Stage 1: map the release's embedded videos onto tracks by title."""
    embedded = [
        (video_id, video.title.strip())
        for video in videos
        if (video_id := extract_youtube_video_id(video.uri))
    ]
    pairs = [
        ScoredPair(
            track_id=track.id,
            candidate=VideoCandidate(
                video_id=video_id,
                title=title or CATALOG_DEFAULT_TITLE,
                channel_title=CATALOG_CHANNEL,
                score=score_title_match(track.title, title),
                source=MatchSource.CATALOG,
            ),
        )
        for track in tracks
        if track.id is not None
        for video_id, title in embedded
    ]
    return {track_id: [candidate] for track_id, candidate in assign_greedy(pairs, threshold).items()}


def storefront_candidates(
    tracks: Sequence[Track],
    scraped: Sequence[tuple[str, Sequence[str]]],
    threshold: float,
    score: float,
) -> CandidateMap:
    """Stage 2: attach scraped storefront videos to the best-matching track.

    Each storefront title goes to the single best-scoring track (first wins on ties) if that
    score reaches the threshold; all its video ids become candidates at a fixed score.
    """
    matches: CandidateMap = {}
    for storefront_title, video_ids in scraped:
        if not video_ids:
            continue
        best_track: Track | None = None
        best_score: float | None = None
        for track in tracks:
            track_score = score_title_match(track.title, storefront_title)
            if best_score is None or track_score > best_score:
                best_track, best_score = track, track_score
        if best_track is None or best_track.id is None or best_score is None or best_score < threshold:
            continue

        existing = matches.setdefault(best_track.id, [])
        seen = {candidate.video_id for candidate in existing}
        for video_id in video_ids:
            if video_id in seen:
                continue
            existing.append(
                VideoCandidate(
                    video_id=video_id,
                    title=f"Bandcamp: {storefront_title}",
                    channel_title=STOREFRONT_CHANNEL,
                    score=score,
                    source=MatchSource.STOREFRONT,
                )
            )
            seen.add(video_id)
    return matches


def release_video_candidate(videos: Sequence[ReleaseVideo], score: float) -> VideoCandidate | None:
    """Stage 4: the first embedded release video at all, as a low-confidence candidate."""
    for video in videos:
        video_id = extract_youtube_video_id(video.uri)
        if video_id:
            return VideoCandidate(
                video_id=video_id,
                title=video.title.strip() or CATALOG_DEFAULT_TITLE,
                channel_title=CATALOG_CHANNEL,
                score=score,
                source=MatchSource.RELEASE_VIDEO,
            )
    return None


class MatchCascade:
    """Runs the cascade stages that need I/O (storefront scrape, keyword search)."""

    def __init__(
        self,
        settings: CrawlSettings,
        link_finder: IStorefrontLinkFinder,
        scraper: IStorefrontScraper,
        youtube: YouTubeClient,
    ) -> None:
        self.settings = settings
        self._link_finder = link_finder
        self._scraper = scraper
        self._youtube = youtube

    async def _scrape_storefront(self, user_id: str, release: Release) -> list[tuple[str, list[str]]]:
        # Storefront trouble never fails a release - worst case we just have no Bandcamp videos
        try:
            album_url = await self._link_finder.find_best_storefront(user_id, release)
            if not album_url:
                return []
            return await self._scraper.scrape_track_videos(album_url)
        except (ExternalServiceError, httpx.HTTPError) as e:
            logger.warning(f"Storefront lookup failed for release {release.id}: {e}")
            return []

    async def seed_candidates(
        self,
        user_id: str,
        release: Release,
        tracks: Sequence[Track],
        detail: ReleaseDetail,
    ) -> CandidateMap:
        """Stages 1-2 for every track of a release.

        Returns:
            track id -> candidates of the first stage that produced any, in rank order
        """
        seeded = catalog_candidates(tracks, detail.videos, self.settings.catalog_match_threshold)
        if all(track.id in seeded for track in tracks):
            return seeded

        scraped = await self._scrape_storefront(user_id, release)
        if scraped:
            from_storefront = storefront_candidates(
                tracks,
                scraped,
                self.settings.storefront_match_threshold,
                self.settings.storefront_score,
            )
            for track_id, candidates in from_storefront.items():
                seeded.setdefault(track_id, candidates)
        return seeded

    async def keyword_candidates(
        self,
        user_id: str,
        track: Track,
        release: Release,
        label_name: str | None,
    ) -> list[VideoCandidate]:
        """Stage 3: keyword search, ranked by query overlap (best first).

        Provider errors propagate - callers decide what a quota or fatal error means.
        """
        query = build_query(track.artists_text or release.artist, track.title, label_name, release.catno)
        results = await self._youtube.search(user_id, query)
        scored = [
            VideoCandidate(
                video_id=item.video_id,
                title=item.title,
                channel_title=item.channel_title,
                score=score_match(query, item.title),
                source=MatchSource.KEYWORD,
            )
            for item in results
        ]
        return sorted(scored, key=lambda candidate: candidate.score, reverse=True)

    async def release_search(self, user_id: str, release: Release) -> str | None:
        """Video id of the top "<artist> <title> full album" search hit."""
        results = await self._youtube.search(user_id, f"{release.artist} {release.title} full album")
        return results[0].video_id if results else None


__all__ = [
    "CandidateMap",
    "MatchCascade",
    "ScoredPair",
    "assign_greedy",
    "catalog_candidates",
    "release_video_candidate",
    "storefront_candidates",
]
