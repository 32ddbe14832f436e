"""Cache layer for provider responses and block records."""

from .base_cache import CacheEntry, InMemoryResponseCache, ResponseCache

__all__ = ["CacheEntry", "InMemoryResponseCache", "ResponseCache"]
