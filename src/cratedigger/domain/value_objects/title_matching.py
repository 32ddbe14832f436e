"""Title tokenizing and scoring for track ↔ video matching.

Hey future me - these are PURE functions (no I/O) so the whole match cascade can be unit
tested without a database or HTTP. The scores are deliberately coarse integers:

    10  exact title match (after normalization)
     8  candidate title contains the full track title ("Artist - Track (Original Mix)")
     5  track title contains the candidate title, candidate at least 6 chars
    2n  two points per shared token, minus 1 if the track title is a single token
   -10  one side normalizes to nothing

Single-token titles ("Intro", "A1") match way too many videos, hence the penalty.
"""

import re
from urllib.parse import parse_qs, urlparse

_APOSTROPHES = re.compile(r"['’]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# 11-char video ids inside watch/embed/short links, also in JSON-escaped HTML
_YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?(?:[^\"'\s<]*&)?v=|youtube\.com/embed/|"
    r"youtube-nocookie\.com/embed/|youtu\.be/)([A-Za-z0-9_-]{11})",
    re.IGNORECASE,
)


def tokenize(text: str) -> list[str]:
    """Lower-case a title and split it into alphanumeric tokens."""
    cleaned = _APOSTROPHES.sub("", text.lower())
    cleaned = _NON_ALNUM.sub(" ", cleaned)
    return [token for token in cleaned.split() if token]


def to_comparable(text: str) -> str:
    """Normalize a title to space-joined tokens for containment checks."""
    return " ".join(tokenize(text))


def score_title_match(track_title: str, candidate_title: str) -> int:
    """Score how well a candidate title matches a track title."""
    track_comparable = to_comparable(track_title)
    candidate_comparable = to_comparable(candidate_title)
    if not track_comparable or not candidate_comparable:
        return -10
    if track_comparable == candidate_comparable:
        return 10
    if track_comparable in candidate_comparable:
        return 8
    if candidate_comparable in track_comparable and len(candidate_comparable) >= 6:
        return 5

    track_tokens = set(tokenize(track_title))
    candidate_tokens = set(tokenize(candidate_title))
    overlap = len(track_tokens & candidate_tokens)
    short_track_penalty = 1 if len(track_tokens) <= 1 else 0
    return overlap * 2 - short_track_penalty


def extract_youtube_video_id(url: str) -> str | None:
    """Extract the video id from a YouTube watch, short-link, embed or shorts URL."""
    trimmed = (url or "").strip()
    if not trimmed:
        return None

    try:
        parsed = urlparse(trimmed)
    except ValueError:
        return None

    host = (parsed.hostname or "").lower()
    if "youtu.be" in host:
        video_id = parsed.path.lstrip("/").split("/")[0]
        return video_id or None
    if "youtube.com" in host:
        watch_ids = parse_qs(parsed.query).get("v")
        if watch_ids and watch_ids[0]:
            return watch_ids[0]
        parts = [part for part in parsed.path.split("/") if part]
        for marker in ("embed", "shorts"):
            if marker in parts:
                index = parts.index(marker)
                if index + 1 < len(parts):
                    return parts[index + 1]
    return None


def collect_youtube_ids(text: str) -> list[str]:
    """Find every distinct YouTube video id referenced in a blob of HTML or JSON."""
    normalized = text.replace("\\/", "/").replace("\\u0026", "&").replace("&amp;", "&")
    seen: dict[str, None] = {}
    for match in _YOUTUBE_ID_PATTERN.finditer(normalized):
        seen.setdefault(match.group(1), None)
    return list(seen)


__all__ = [
    "collect_youtube_ids",
    "extract_youtube_video_id",
    "score_title_match",
    "to_comparable",
    "tokenize",
]
