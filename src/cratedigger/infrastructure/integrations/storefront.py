"""Bandcamp album page scraper for per-track embedded videos.

Hey future me - Bandcamp album pages carry the whole track list as JSON in a `data-tralbum`
attribute. Artists sometimes paste YouTube links into the track info or the per-track
page, and those are gold: an artist-approved video for exactly that track. We collect every
video id we can find per Bandcamp track title; mapping titles onto OUR tracks happens in the
match cascade, not here.

Failures are quiet on purpose: a missing or broken storefront page just means "no
storefront videos", never a failed release.
"""

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from cratedigger.config.settings import StorefrontSettings
from cratedigger.domain.ports import IStorefrontScraper
from cratedigger.domain.value_objects import collect_youtube_ids

logger = logging.getLogger(__name__)


def parse_track_info(album_html: str) -> list[dict[str, Any]]:
    """Extract the `trackinfo` entries with a non-empty title from an album page."""
    soup = BeautifulSoup(album_html, "html.parser")
    holder = soup.find(attrs={"data-tralbum": True})
    if holder is None:
        return []
    try:
        tralbum = json.loads(holder["data-tralbum"])
    except (json.JSONDecodeError, TypeError):
        logger.debug("Bandcamp data-tralbum is not valid JSON")
        return []
    entries = tralbum.get("trackinfo") if isinstance(tralbum, dict) else None
    return [
        entry
        for entry in entries or []
        if isinstance(entry, dict) and isinstance(entry.get("title"), str) and entry["title"].strip()
    ]


class BandcampStorefrontScraper(IStorefrontScraper):
    """Collects YouTube video ids per track from a Bandcamp album page."""

    def __init__(self, http_client: httpx.AsyncClient, settings: StorefrontSettings) -> None:
        self._client = http_client
        self.settings = settings

    async def _fetch_text(self, url: str) -> str | None:
        try:
            response = await self._client.get(
                url,
                headers={"User-Agent": self.settings.user_agent},
                timeout=self.settings.timeout_seconds,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch storefront page {url}: {e}")
            return None
        if not response.is_success:
            logger.debug(f"Storefront page {url} returned {response.status_code}")
            return None
        return response.text

    async def _videos_for_entry(self, album_url: str, entry: dict[str, Any]) -> tuple[str, list[str]]:
        ids: dict[str, None] = dict.fromkeys(collect_youtube_ids(json.dumps(entry)))
        link = entry.get("title_link")
        if isinstance(link, str) and link.strip():
            track_html = await self._fetch_text(urljoin(album_url, link.strip()))
            if track_html:
                ids.update(dict.fromkeys(collect_youtube_ids(track_html)))
        return entry["title"].strip(), list(ids)

    async def scrape_track_videos(self, album_url: str) -> list[tuple[str, list[str]]]:
        album_html = await self._fetch_text(album_url)
        if not album_html:
            return []

        entries = parse_track_info(album_html)
        results = await asyncio.gather(
            *(self._videos_for_entry(album_url, entry) for entry in entries)
        )
        found = [(title, ids) for title, ids in results if ids]
        logger.debug(f"Bandcamp {album_url}: {len(found)}/{len(entries)} tracks with videos")
        return found


__all__ = ["BandcampStorefrontScraper", "parse_track_info"]
