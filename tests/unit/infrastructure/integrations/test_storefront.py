"""Tests for the Bandcamp storefront scraper."""

import html
import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from cratedigger.config import StorefrontSettings
from cratedigger.infrastructure.integrations import BandcampStorefrontScraper
from cratedigger.infrastructure.integrations.storefront import parse_track_info

ALBUM_URL = "https://artist.bandcamp.test/album/some-ep"


def album_page(trackinfo: list[dict[str, object]]) -> str:
    payload = html.escape(json.dumps({"trackinfo": trackinfo}), quote=True)
    return f'<html><body><div id="tralbum" data-tralbum="{payload}"></div></body></html>'


class TestParseTrackInfo:
    def test_entries_without_title_are_dropped(self) -> None:
        page = album_page([{"title": "Opener"}, {"title": "  "}, {"no": "title"}])
        assert [e["title"] for e in parse_track_info(page)] == ["Opener"]

    def test_page_without_tralbum(self) -> None:
        assert parse_track_info("<html></html>") == []


class TestBandcampStorefrontScraper:
    @pytest.fixture
    async def scraper(self):
        async with httpx.AsyncClient() as client:
            yield BandcampStorefrontScraper(client, StorefrontSettings())

    async def test_collects_ids_from_album_and_track_pages(
        self, scraper: BandcampStorefrontScraper, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=ALBUM_URL,
            text=album_page(
                [
                    {"title": "Opener", "about": "https://youtu.be/AAAAAAAAAAA"},
                    {"title": "Closer", "title_link": "/track/closer"},
                    {"title": "No Video"},
                ]
            ),
        )
        httpx_mock.add_response(
            url="https://artist.bandcamp.test/track/closer",
            text='<a href="https://www.youtube.com/watch?v=BBBBBBBBBBB">video</a>',
        )

        result = await scraper.scrape_track_videos(ALBUM_URL)

        assert result == [("Opener", ["AAAAAAAAAAA"]), ("Closer", ["BBBBBBBBBBB"])]

    async def test_broken_page_means_no_videos(
        self, scraper: BandcampStorefrontScraper, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=ALBUM_URL, status_code=500)

        assert await scraper.scrape_track_videos(ALBUM_URL) == []

    async def test_network_error_means_no_videos(
        self, scraper: BandcampStorefrontScraper, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectTimeout("slow"), url=ALBUM_URL)

        assert await scraper.scrape_track_videos(ALBUM_URL) == []
