"""Tenant-scoped catalog ids.

Hey future me - labels and releases use the Discogs id as primary key, but two users can
crawl the same label. To keep one table for everyone we shift the Discogs id into a
per-user namespace:

    stored_id = namespace * 1_000_000_000 + discogs_id

namespace comes from a sha256 of "<kind>:<user_id>" so it is stable across restarts.
Always convert back with to_external_id() before talking to Discogs!
"""

import hashlib
import re
from typing import Literal

SCOPE_BASE = 1_000_000_000

IdKind = Literal["label", "release"]

_LABEL_URL_PATTERN = re.compile(r"/label/(\d+)", re.IGNORECASE)


def _namespace(user_id: str, kind: IdKind) -> int:
    digest = hashlib.sha256(f"{kind}:{user_id}".encode()).hexdigest()
    return int(digest[:6], 16) % 900_000 + 1


def to_stored_id(user_id: str, external_id: int, kind: IdKind) -> int:
    """Map a provider id into the tenant's id namespace."""
    if external_id <= 0:
        return external_id
    return _namespace(user_id, kind) * SCOPE_BASE + external_id


def to_external_id(stored_or_external_id: int) -> int:
    """Recover the provider id from a stored id (external ids pass through)."""
    if stored_or_external_id <= 0:
        return stored_or_external_id
    if stored_or_external_id >= SCOPE_BASE:
        return stored_or_external_id % SCOPE_BASE
    return stored_or_external_id


def parse_label_id(text: str) -> int | None:
    """Parse a numeric label id or a discogs.com/label/<id> URL."""
    trimmed = text.strip()
    if trimmed.isdigit():
        return int(trimmed)
    match = _LABEL_URL_PATTERN.search(trimmed)
    return int(match.group(1)) if match else None
