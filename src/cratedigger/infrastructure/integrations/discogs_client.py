"""Discogs HTTP client (catalog provider).

Every call goes through the Discogs ApiGateway (1.2s gap, 4 attempts, response cache). This
module only knows Discogs paths and JSON shapes and turns them into DTOs.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote

import httpx

from cratedigger.config.settings import DiscogsSettings
from cratedigger.domain.dtos import (
    LabelProfile,
    LabelReleasePage,
    LabelReleaseSummary,
    LabelSearchResult,
    ReleaseDetail,
    ReleaseVideo,
    TracklistEntry,
    WantItem,
)
from cratedigger.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    FatalConfigurationError,
)
from cratedigger.domain.value_objects import to_external_id
from cratedigger.infrastructure.integrations.gateway import ApiGateway

logger = logging.getLogger(__name__)

MAX_WANTLIST_PAGES = 120
PROFILE_BLURB_LIMIT = 360

_MARKUP_LINK_OPEN = re.compile(r"\[(?:a|l|r|url|m)=([^\]]+)\]", re.IGNORECASE)
_MARKUP_LINK_CLOSE = re.compile(r"\[/(?:a|l|r|url|m)\]", re.IGNORECASE)
_MARKUP_TAG = re.compile(r"\[([^\]]+)\]")
_WHITESPACE = re.compile(r"\s+")
_RELEASE_RESOURCE = re.compile(r"/releases/\d+", re.IGNORECASE)
_LABEL_RESOURCE = re.compile(r"/labels?/(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class DiscogsAuth:
    """Discogs credential: personal token or an OAuth bearer token."""

    token: str
    kind: Literal["personal", "bearer"] = "personal"

    @property
    def header(self) -> str:
        if self.kind == "bearer":
            return f"Bearer {self.token}"
        return f"Discogs token={self.token}"


def classify_discogs_error(response: httpx.Response) -> ExternalServiceError | None:
    """401 means the token is revoked or wrong - no point retrying for a day."""
    if response.status_code == 401:
        return FatalConfigurationError(
            "discogs", "Discogs rejected the credential (401). Reconnect Discogs."
        )
    return None


def clean_profile(profile: str | None) -> str | None:
    """Strip Discogs [l=...]/[a=...] markup and cap the blurb length."""
    if not profile:
        return None
    cleaned = _MARKUP_LINK_OPEN.sub(r"\1", profile)
    cleaned = _MARKUP_LINK_CLOSE.sub("", cleaned)
    cleaned = _MARKUP_TAG.sub(r"\1", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:PROFILE_BLURB_LIMIT] or None


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _names(items: list[dict[str, Any]] | None, field: str = "name") -> list[str]:
    return [name for item in items or [] if (name := _clean(item.get(field)))]


def _positive_int(value: Any) -> int | None:
    return value if isinstance(value, int) and value > 0 else None


def _parse_release(data: dict[str, Any]) -> ReleaseDetail:
    tracklist = [
        TracklistEntry(
            position=str(entry.get("position") or ""),
            title=str(entry.get("title") or "").strip(),
            duration=_clean(entry.get("duration")),
            artists=_names(entry.get("artists")),
        )
        for entry in data.get("tracklist") or []
    ]
    videos = [
        ReleaseVideo(uri=uri, title=str(video.get("title") or ""))
        for video in data.get("videos") or []
        if (uri := _clean(video.get("uri")))
    ]
    formats = data.get("formats") or []
    labels = data.get("labels") or []
    first_label = labels[0] if labels else {}
    label_id = _positive_int(first_label.get("id"))
    if label_id is None and (match := _LABEL_RESOURCE.search(first_label.get("resource_url") or "")):
        label_id = int(match.group(1))

    return ReleaseDetail(
        id=int(data["id"]),
        title=str(data.get("title") or ""),
        tracklist=tracklist,
        videos=videos,
        artists_sort=_clean(data.get("artists_sort")),
        artists=_names(data.get("artists")),
        styles=[s for s in data.get("styles") or [] if isinstance(s, str)],
        genres=[g for g in data.get("genres") or [] if isinstance(g, str)],
        contributors=_names(data.get("extraartists")),
        contributor_roles=_names(data.get("extraartists"), "role"),
        companies=_names(data.get("companies")),
        formats=[
            *_names(formats),
            *[d for f in formats for d in f.get("descriptions") or [] if isinstance(d, str)],
        ],
        country=_clean(data.get("country")),
        year=_positive_int(data.get("year")),
        label_id=label_id,
        label_name=_clean(first_label.get("name")),
        catno=_clean(first_label.get("catno")),
    )


def _parse_want(item: dict[str, Any]) -> WantItem | None:
    info = item.get("basic_information") or {}
    release_id = _positive_int(item.get("id")) or _positive_int(info.get("id"))
    if release_id is None:
        return None

    raw_title = _clean(info.get("title")) or f"Release {release_id}"
    first_artist = (_names(info.get("artists")) or [""])[0]
    title_parts = raw_title.split(" - ")
    artist = first_artist or (title_parts[0] if len(title_parts) > 1 else "Unknown Artist")
    title = " - ".join(title_parts[1:]) if len(title_parts) > 1 else raw_title

    resource_url = _clean(info.get("resource_url"))
    if resource_url and _RELEASE_RESOURCE.search(resource_url):
        discogs_url = resource_url.replace("api.discogs.com", "www.discogs.com")
    else:
        discogs_url = f"https://www.discogs.com/release/{release_id}"

    labels = info.get("labels") or []
    first_label = labels[0] if labels else {}
    return WantItem(
        release_id=release_id,
        title=title,
        artist=artist,
        discogs_url=discogs_url,
        thumb_url=_clean(info.get("thumb")),
        catno=_clean(first_label.get("catno")),
        label_id=_positive_int(first_label.get("id")),
        label_name=_clean(first_label.get("name")),
    )


class DiscogsClient:
    """Catalog operations against api.discogs.com."""

    # Hey future me - label/release ids coming in here may be tenant-scoped STORED ids
    # (see value_objects/catalog_ids.py). Every method converts with to_external_id() before
    # building a path. Forget that and Discogs answers 404 for ids like 4711000012345.
    def __init__(
        self,
        gateway: ApiGateway,
        auth: DiscogsAuth | None,
        settings: DiscogsSettings,
    ) -> None:
        self._gateway = gateway
        self._auth = auth
        self.settings = settings

    def _require_auth(self) -> DiscogsAuth:
        if self._auth is None:
            raise ConfigurationError("Discogs is not connected. Set CRATEDIGGER_DISCOGS__TOKEN.")
        return self._auth

    async def _get(
        self,
        user_id: str,
        path: str,
        params: dict[str, Any] | None = None,
        cache_ttl: int = 0,
    ) -> Any:
        auth = self._require_auth()
        return await self._gateway.request(
            "GET",
            path,
            user_id=user_id,
            credential=auth.token,
            params=params,
            headers={"Authorization": auth.header},
            cache_ttl=cache_ttl,
        )

    async def fetch_label_releases(
        self, user_id: str, label_id: int, page: int = 1, per_page: int | None = None
    ) -> LabelReleasePage:
        """Fetch one page of a label's releases."""
        data = await self._get(
            user_id,
            f"/labels/{to_external_id(label_id)}/releases",
            params={"page": page, "per_page": per_page or self.settings.page_size},
            cache_ttl=self.settings.label_releases_ttl,
        ) or {}

        releases = [
            LabelReleaseSummary(
                id=int(row["id"]),
                title=str(row.get("title") or ""),
                artist=_clean(row.get("artist")) or "Unknown Artist",
                year=_positive_int(row.get("year")),
                catno=_clean(row.get("catno")),
                thumb=_clean(row.get("thumb")),
            )
            for row in data.get("releases") or []
            if _positive_int(row.get("id"))
        ]
        pagination = data.get("pagination") or {}
        return LabelReleasePage(
            releases=releases,
            page=_positive_int(pagination.get("page")) or page,
            pages=_positive_int(pagination.get("pages")) or page,
        )

    async def fetch_release(self, user_id: str, release_id: int) -> ReleaseDetail:
        """Fetch full release metadata (tracklist, videos, credits)."""
        external_id = to_external_id(release_id)
        data = await self._get(
            user_id,
            f"/releases/{external_id}",
            cache_ttl=self.settings.release_ttl,
        )
        if not isinstance(data, dict):
            raise ExternalServiceError("discogs", f"Discogs release {external_id} returned no data")
        return _parse_release(data)

    async def fetch_identity(self, user_id: str) -> str:
        """Return the Discogs username the credential belongs to."""
        data = await self._get(user_id, "/oauth/identity", cache_ttl=self.settings.identity_ttl)
        username = _clean((data or {}).get("username"))
        if username is None:
            raise ExternalServiceError("discogs", "Discogs identity response has no username")
        return username

    async def fetch_want_items(self, user_id: str) -> list[WantItem]:
        """Fetch every wantlist page (capped), de-duplicated by release id."""
        username = await self.fetch_identity(user_id)
        items: dict[int, WantItem] = {}
        page = 1
        total_pages = 1

        while page <= total_pages and page <= MAX_WANTLIST_PAGES:
            data = await self._get(
                user_id,
                f"/users/{quote(username)}/wants",
                params={"page": page, "per_page": 100},
            ) or {}
            for raw in data.get("wants") or []:
                want = _parse_want(raw)
                if want is not None:
                    items[want.release_id] = want
            total_pages = _positive_int((data.get("pagination") or {}).get("pages")) or page
            page += 1

        logger.info(f"Fetched {len(items)} wantlist items for {username}")
        return list(items.values())

    async def set_wishlist(self, user_id: str, release_id: int, enabled: bool) -> None:
        """Add (PUT) or remove (DELETE) a release from the user's wantlist.

        404 counts as success: removing something that isn't there is fine.
        """
        auth = self._require_auth()
        username = await self.fetch_identity(user_id)
        await self._gateway.request(
            "PUT" if enabled else "DELETE",
            f"/users/{quote(username)}/wants/{to_external_id(release_id)}",
            user_id=user_id,
            credential=auth.token,
            headers={"Authorization": auth.header},
            ok_statuses=(404,),
        )

    async def fetch_label_profile(self, user_id: str, label_id: int) -> LabelProfile:
        """Fetch label name, cleaned profile blurb and thumbnail."""
        data = await self._get(
            user_id,
            f"/labels/{to_external_id(label_id)}",
            cache_ttl=self.settings.label_profile_ttl,
        ) or {}
        images = data.get("images") or []
        image = images[0] if images else {}
        return LabelProfile(
            name=_clean(data.get("name")),
            blurb=clean_profile(data.get("profile")),
            image_url=_clean(image.get("uri150")) or _clean(image.get("uri")),
        )

    async def search_labels(self, user_id: str, query: str) -> list[LabelSearchResult]:
        """Search Discogs labels by name."""
        data = await self._get(
            user_id,
            "/database/search",
            params={"q": query, "type": "label", "per_page": 8},
            cache_ttl=self.settings.search_ttl,
        ) or {}
        return [
            LabelSearchResult(id=int(row["id"]), title=str(row.get("title") or ""))
            for row in data.get("results") or []
            if _positive_int(row.get("id"))
        ]


__all__ = ["DiscogsAuth", "DiscogsClient", "classify_discogs_error", "clean_profile"]
