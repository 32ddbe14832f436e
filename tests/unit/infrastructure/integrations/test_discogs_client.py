"""Tests for the Discogs client."""

import pytest
from pytest_httpx import HTTPXMock

from cratedigger.config import DiscogsSettings
from cratedigger.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    FatalConfigurationError,
)
from cratedigger.domain.value_objects import to_stored_id
from cratedigger.infrastructure.integrations import DiscogsAuth, DiscogsClient
from cratedigger.infrastructure.integrations.discogs_client import clean_profile


class TestCleanProfile:
    def test_strips_markup(self) -> None:
        text = "Founded by  [a=Some Artist] in [l=Sheffield][/l]."
        assert clean_profile(text) == "Founded by Some Artist in Sheffield."

    def test_empty_profile(self) -> None:
        assert clean_profile("") is None
        assert clean_profile(None) is None

    def test_blurb_is_capped(self) -> None:
        assert len(clean_profile("x" * 1000) or "") == 360


class TestDiscogsAuth:
    def test_personal_token_header(self) -> None:
        assert DiscogsAuth("abc").header == "Discogs token=abc"

    def test_bearer_header(self) -> None:
        assert DiscogsAuth("abc", "bearer").header == "Bearer abc"


class TestDiscogsClient:
    async def test_label_page_uses_external_id(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            json={
                "pagination": {"page": 2, "pages": 5},
                "releases": [
                    {"id": 11, "title": "First EP", "artist": "Someone", "year": 1999, "catno": "WAP1"},
                    {"id": 0, "title": "broken row"},
                ],
            }
        )
        stored = to_stored_id("alice", 23528, "label")

        page = await discogs_client.fetch_label_releases("alice", stored, page=2)

        request = httpx_mock.get_requests()[0]
        assert request.url.path == "/labels/23528/releases"
        assert request.url.params["page"] == "2"
        assert request.headers["Authorization"] == "Discogs token=tok-123456789"
        assert page.page == 2
        assert page.pages == 5
        assert [r.id for r in page.releases] == [11]
        assert page.releases[0].catno == "WAP1"

    async def test_release_detail_is_parsed(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            json={
                "id": 99,
                "title": "Some EP",
                "artists_sort": "The Artist",
                "artists": [{"name": "The Artist"}],
                "tracklist": [
                    {"position": "A1", "title": "Opener", "duration": "5:01"},
                    {"position": "", "title": "  ", "type_": "heading"},
                ],
                "videos": [{"uri": "https://www.youtube.com/watch?v=AAAAAAAAAAA", "title": "Opener"}],
                "styles": ["Techno"],
                "genres": ["Electronic"],
                "extraartists": [{"name": "Engineer Joe", "role": "Mastered By"}],
                "formats": [{"name": "Vinyl", "descriptions": ["12\"", "EP"]}],
                "labels": [{"id": 777, "name": "Some Label", "catno": "SL001"}],
                "year": 2001,
                "country": "UK",
            }
        )

        detail = await discogs_client.fetch_release("alice", 99)

        assert detail.primary_artist == "The Artist"
        assert [t.title for t in detail.tracklist] == ["Opener", ""]
        assert detail.videos[0].uri.endswith("AAAAAAAAAAA")
        assert detail.contributors == ["Engineer Joe"]
        assert detail.contributor_roles == ["Mastered By"]
        assert detail.formats == ["Vinyl", '12"', "EP"]
        assert (detail.label_id, detail.label_name, detail.catno) == (777, "Some Label", "SL001")

    async def test_release_is_cached(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(json={"id": 5, "title": "Cached"})

        await discogs_client.fetch_release("alice", 5)
        await discogs_client.fetch_release("alice", 5)

        assert len(httpx_mock.get_requests()) == 1

    async def test_empty_release_body_is_provider_error(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(status_code=200, content=b"")

        with pytest.raises(ExternalServiceError, match="returned no data"):
            await discogs_client.fetch_release("alice", 5)

    async def test_unauthorized_is_fatal(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(status_code=401, json={"message": "nope"})

        with pytest.raises(FatalConfigurationError):
            await discogs_client.fetch_release("alice", 5)

    async def test_missing_token_is_configuration_error(self, discogs_client: DiscogsClient) -> None:
        client = DiscogsClient(discogs_client._gateway, None, DiscogsSettings())
        with pytest.raises(ConfigurationError):
            await client.fetch_release("alice", 5)

    async def test_wantlist_pages_are_merged(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(json={"username": "digger"})
        httpx_mock.add_response(
            json={
                "pagination": {"pages": 2},
                "wants": [
                    {
                        "id": 1,
                        "basic_information": {
                            "title": "Track Title",
                            "artists": [{"name": "Artist A"}],
                            "labels": [{"id": 9, "name": "Label Nine", "catno": "L9"}],
                        },
                    }
                ],
            }
        )
        httpx_mock.add_response(
            json={
                "pagination": {"pages": 2},
                "wants": [
                    {"id": 2, "basic_information": {"title": "Artist B - Other Title"}},
                    {"id": 1, "basic_information": {"title": "Track Title"}},
                ],
            }
        )

        wants = await discogs_client.fetch_want_items("alice")

        by_id = {w.release_id: w for w in wants}
        assert set(by_id) == {1, 2}
        assert by_id[2].artist == "Artist B"
        assert by_id[2].title == "Other Title"
        assert by_id[2].discogs_url == "https://www.discogs.com/release/2"

    async def test_removing_missing_want_is_fine(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(json={"username": "digger"})
        httpx_mock.add_response(status_code=404)

        await discogs_client.set_wishlist("alice", to_stored_id("alice", 42, "release"), False)

        request = httpx_mock.get_requests()[1]
        assert request.method == "DELETE"
        assert request.url.path == "/users/digger/wants/42"

    async def test_search_labels(
        self, discogs_client: DiscogsClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(json={"results": [{"id": 23528, "title": "Warp Records"}]})

        results = await discogs_client.search_labels("alice", "warp")

        assert [(r.id, r.title) for r in results] == [(23528, "Warp Records")]
