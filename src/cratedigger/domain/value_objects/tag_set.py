"""Ordered tag collections (styles, genres, contributors, ...).

Hey future me - tags stay a real collection in memory. Only the repository calls
encode()/decode() when writing/reading the TEXT column, so no scoring code ever has to
split strings again.
"""

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class TagSet:
    """Immutable, de-duplicated, insertion-ordered set of non-empty strings."""

    items: tuple[str, ...] = ()

    @classmethod
    def of(cls, values: Iterable[str | None]) -> "TagSet":
        """Build from raw values, trimming blanks and dropping duplicates."""
        seen: dict[str, None] = {}
        for value in values:
            if value is None:
                continue
            cleaned = value.strip()
            if cleaned:
                seen.setdefault(cleaned, None)
        return cls(tuple(seen))

    def union(self, other: Iterable[str]) -> "TagSet":
        return TagSet.of([*self.items, *other])

    def take(self, limit: int) -> "TagSet":
        """The first `limit` tags."""
        return TagSet(self.items[:limit])

    def encode(self) -> str:
        """Serialize to a JSON array for a TEXT column."""
        return json.dumps(list(self.items))

    @classmethod
    def decode(cls, raw: str | None) -> "TagSet":
        """Parse a JSON array written by encode(); blank or malformed input is empty."""
        if not raw:
            return cls()
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            return cls()
        if not isinstance(values, list):
            return cls()
        return cls.of(str(value) for value in values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item: object) -> bool:
        return item in self.items
