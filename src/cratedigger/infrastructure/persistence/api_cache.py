"""Database-backed response cache (`api_cache` table).

Hey future me - the gateways are process-wide and outlive any request, so this cache opens
its OWN short session per operation instead of borrowing the caller's. That also means a
cached response or block record is committed even if the surrounding step later rolls back,
which is exactly what we want: a quota block must survive a failed ingestion step.
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select

from cratedigger.application.cache import ResponseCache

from .database import Database
from .models import ApiCacheModel, ensure_utc_aware, utc_now


class DatabaseResponseCache(ResponseCache):
    """Tenant-scoped key/TTL cache persisted in `api_cache`."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self._database = database
        self._clock = clock

    async def get(self, user_id: str, key: str) -> Any | None:
        async with self._database.session_scope() as session:
            model = await session.get(ApiCacheModel, (user_id, key))
            if model is None:
                return None
            if ensure_utc_aware(model.expires_at) <= self._clock():
                return None
            return json.loads(model.response_json)

    async def set(self, user_id: str, key: str, value: Any, ttl_seconds: int) -> None:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        payload = json.dumps(value)
        async with self._database.session_scope() as session:
            model = await session.get(ApiCacheModel, (user_id, key))
            if model is None:
                session.add(
                    ApiCacheModel(
                        user_id=user_id,
                        key=key,
                        response_json=payload,
                        fetched_at=now,
                        expires_at=expires_at,
                    )
                )
            else:
                model.response_json = payload
                model.fetched_at = now
                model.expires_at = expires_at

    async def delete(self, user_id: str, key: str) -> bool:
        async with self._database.session_scope() as session:
            result = await session.execute(
                delete(ApiCacheModel).where(
                    ApiCacheModel.user_id == user_id, ApiCacheModel.key == key
                )
            )
            return bool(result.rowcount)  # type: ignore[attr-defined]

    async def purge_expired(self) -> int:
        """Delete expired rows for every tenant. Returns rows removed."""
        now = self._clock()
        async with self._database.session_scope() as session:
            result = await session.execute(select(ApiCacheModel.user_id, ApiCacheModel.key, ApiCacheModel.expires_at))
            expired = [(row.user_id, row.key) for row in result if ensure_utc_aware(row.expires_at) <= now]
            for user_id, key in expired:
                await session.execute(
                    delete(ApiCacheModel).where(
                        ApiCacheModel.user_id == user_id, ApiCacheModel.key == key
                    )
                )
            return len(expired)
