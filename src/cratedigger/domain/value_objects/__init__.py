"""Domain value objects and pure helpers."""

from .catalog_ids import SCOPE_BASE, parse_label_id, to_external_id, to_stored_id
from .tag_set import TagSet
from .title_matching import (
    collect_youtube_ids,
    extract_youtube_video_id,
    score_title_match,
    to_comparable,
    tokenize,
)

__all__ = [
    "SCOPE_BASE",
    "TagSet",
    "collect_youtube_ids",
    "extract_youtube_video_id",
    "parse_label_id",
    "score_title_match",
    "to_comparable",
    "to_external_id",
    "to_stored_id",
    "tokenize",
]
