"""YouTube Data API v3 client (video provider).

Hey future me - one search.list call = 100 quota units. With the default 10k/day that's
~100 searches, so:
    - results are cached for days (lower-cased query)
    - quota errors block the key for 8h instead of hammering the API
    - a key that isn't allowed to call search at all (API_KEY_SERVICE_BLOCKED) blocks for 24h
      and is FATAL - callers must not swallow it as a weak match
"""

import json
import logging
import re
from typing import Any

import httpx

from cratedigger.config.settings import YouTubeSettings
from cratedigger.domain.dtos import VideoSearchItem
from cratedigger.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    FatalConfigurationError,
    QuotaExceededError,
)
from cratedigger.infrastructure.integrations.gateway import ApiGateway

logger = logging.getLogger(__name__)

QUOTA_REASONS = frozenset(
    {"quotaExceeded", "dailyLimitExceeded", "userRateLimitExceeded", "rateLimitExceeded"}
)

_WORD_SPLIT = re.compile(r"\W+")
_WHITESPACE = re.compile(r"\s+")


def build_query(
    artist: str | None, title: str, label_name: str | None = None, catno: str | None = None
) -> str:
    """Build "<artist> - <title> <label> <catno>" with blanks collapsed."""
    raw = f"{artist or ''} - {title} {label_name or ''} {catno or ''}"
    return _WHITESPACE.sub(" ", raw).strip()


def score_match(query: str, candidate_title: str) -> int:
    """Token overlap between query and candidate, minus 2 for "full album" uploads."""
    query_tokens = {t for t in _WORD_SPLIT.split(query.lower()) if t}
    title_tokens = {t for t in _WORD_SPLIT.split(candidate_title.lower()) if t}
    penalty = 2 if "full album" in candidate_title.lower() else 0
    return len(query_tokens & title_tokens) - penalty


def _error_reasons(body: dict[str, Any]) -> tuple[list[str], str]:
    error = body.get("error") or {}
    reasons = [
        str(item.get("reason"))
        for item in [*(error.get("errors") or []), *(error.get("details") or [])]
        if isinstance(item, dict) and item.get("reason")
    ]
    return reasons, str(error.get("message") or "")


def classify_youtube_error(response: httpx.Response) -> ExternalServiceError | None:
    """Map a Google API error response to a quota or fatal error."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        body = {}
    if not isinstance(body, dict):
        body = {}
    reasons, message = _error_reasons(body)
    message = message or response.text
    status = response.status_code

    if status == 403 and (
        "API_KEY_SERVICE_BLOCKED" in reasons
        or "API_KEY_SERVICE_BLOCKED" in message
        or "V3DataSearchService.List are blocked" in message
    ):
        return FatalConfigurationError(
            "youtube",
            "YouTube key blocked (API_KEY_SERVICE_BLOCKED). Enable YouTube Data API v3 and "
            "allow the key to call youtube.googleapis.com.",
        )
    if status == 403 and QUOTA_REASONS.intersection(reasons):
        return QuotaExceededError(
            "youtube", "YouTube quota exceeded for this key. Wait for quota reset or use another key."
        )
    if status == 400 and "keyInvalid" in reasons:
        return FatalConfigurationError("youtube", "YouTube API key invalid. Check the configured key.")
    return None


class YouTubeClient:
    """Keyword video search."""

    def __init__(self, gateway: ApiGateway, api_key: str | None, settings: YouTubeSettings) -> None:
        self._gateway = gateway
        self._api_key = api_key
        self.settings = settings

    async def search(self, user_id: str, query: str) -> list[VideoSearchItem]:
        """Search embeddable videos for a query.

        Raises:
            ConfigurationError: No API key configured
            QuotaExceededError / FatalConfigurationError / TemporarilyBlockedError /
            RetriesExhaustedError: see ApiGateway.request
        """
        if not self._api_key:
            raise ConfigurationError("Missing YouTube API key. Set CRATEDIGGER_YOUTUBE__API_KEY.")

        data = await self._gateway.request(
            "GET",
            "/search",
            user_id=user_id,
            credential=self._api_key,
            params={
                "key": self._api_key,
                "q": query,
                "part": "snippet",
                "type": "video",
                "maxResults": self.settings.max_results,
                "videoEmbeddable": "true",
                "videoSyndicated": "true",
                "safeSearch": "none",
            },
            cache_ttl=self.settings.search_ttl,
        ) or {}

        items: list[VideoSearchItem] = []
        for raw in data.get("items") or []:
            video_id = (raw.get("id") or {}).get("videoId")
            if not video_id:
                continue
            snippet = raw.get("snippet") or {}
            items.append(
                VideoSearchItem(
                    video_id=video_id,
                    title=str(snippet.get("title") or ""),
                    channel_title=str(snippet.get("channelTitle") or ""),
                )
            )
        logger.debug(f"YouTube search '{query}' -> {len(items)} results")
        return items


__all__ = ["YouTubeClient", "build_query", "classify_youtube_error", "score_match"]
