"""Response cache interface and in-memory implementation.

Hey future me - the gateway caches provider responses AND block records here. Entries are
always scoped by tenant (user_id) and expire purely by TTL; there is no invalidation path
besides time. Values must be JSON-serializable since the production backend is a TEXT
column (see infrastructure/persistence/api_cache.py).
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Cache entry with serialized value and expiry."""

    payload: str
    created_at: float
    ttl_seconds: int

    def is_expired(self, now: float) -> bool:
        return now >= self.created_at + self.ttl_seconds


class ResponseCache(ABC):
    """Tenant-scoped key/TTL cache."""

    @abstractmethod
    async def get(self, user_id: str, key: str) -> Any | None:
        """Get a value if present and not expired.

        Args:
            user_id: Acting tenant
            key: Cache key

        Returns:
            Cached value, or None when missing or expired
        """

    @abstractmethod
    async def set(self, user_id: str, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a value, overwriting any existing entry."""

    @abstractmethod
    async def delete(self, user_id: str, key: str) -> bool:
        """Delete an entry. Returns True if it existed."""


class InMemoryResponseCache(ResponseCache):
    """Dictionary-backed cache with an injectable clock.

    Used by tests (fake clock → TTL expiry without sleeping) and by short-lived scripts.
    Server restart = everything lost, including block records.
    """

    # Values go through json so callers can't mutate cached data in place, same as the DB
    # backend. The lock keeps concurrent get/set from interleaving on the dict.
    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str, key: str) -> Any | None:
        async with self._lock:
            entry = self._entries.get((user_id, key))
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[(user_id, key)]
                return None
            return json.loads(entry.payload)

    async def set(self, user_id: str, key: str, value: Any, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[(user_id, key)] = CacheEntry(
                payload=json.dumps(value),
                created_at=self._clock(),
                ttl_seconds=ttl_seconds,
            )

    async def delete(self, user_id: str, key: str) -> bool:
        async with self._lock:
            return self._entries.pop((user_id, key), None) is not None

    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
            for k in expired:
                del self._entries[k]
            return len(expired)

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics (unlocked, for debugging only)."""
        now = self._clock()
        total = len(self._entries)
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            "total_entries": total,
            "active_entries": total - expired,
            "expired_entries": expired,
        }
