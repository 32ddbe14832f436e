"""Rate-limited, cached, retrying gateway in front of every provider API.

Hey future me - this is THE choke point for Discogs and YouTube traffic. Both clients only
describe WHAT to call; the gateway decides whether the call happens at all:

    1. cache hit          -> return it, don't even queue
    2. block record       -> raise immediately (quota / fatal key / transient outage)
    3. serial limiter     -> one call at a time, min gap between calls
    4. 429/5xx/network    -> retry with base * 2**attempt, then a short transient block
    5. classified failure -> write quota/fatal block record, raise
    6. success            -> parse JSON, cache

Block records live in the same response cache as payloads, keyed by a fingerprint of the
credential (NOT the credential itself - the cache table is readable by anyone with the DB).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Collection, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from cratedigger.application.cache import ResponseCache
from cratedigger.config.settings import DiscogsSettings, YouTubeSettings
from cratedigger.domain.entities import utc_now
from cratedigger.domain.exceptions import (
    ExternalServiceError,
    FatalConfigurationError,
    ProviderHTTPError,
    QuotaExceededError,
    RetriesExhaustedError,
    TemporarilyBlockedError,
)
from cratedigger.infrastructure.rate_limiter import Clock, SerialRateLimiter, Sleep

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A classifier looks at a failed (non-retryable) response and returns the domain error it
# means, or None for "just an HTTP error".
Classifier = Callable[[httpx.Response], ExternalServiceError | None]

QUOTA_TIER = "quota"
FATAL_TIER = "fatal"
TRANSIENT_TIER = "transient"


@dataclass(frozen=True)
class ProviderPolicy:
    """Rate, retry and block settings of one provider.

    A block TTL of 0 disables that tier (no record written, no check made).
    """

    name: str
    min_call_gap_seconds: float
    max_retries: int
    backoff_base_seconds: float
    quota_block_ttl: int = 0
    fatal_block_ttl: int = 0
    transient_block_ttl: int = 0
    # query params that carry the credential and must never end up in a cache key
    secret_params: frozenset[str] = frozenset()

    @classmethod
    def for_discogs(cls, settings: DiscogsSettings) -> "ProviderPolicy":
        """Discogs: 1 call per 1.2s, 4 attempts, no transient blocking."""
        return cls(
            name="discogs",
            min_call_gap_seconds=settings.min_call_gap_seconds,
            max_retries=settings.max_retries,
            backoff_base_seconds=settings.backoff_base_seconds,
            fatal_block_ttl=settings.fatal_block_ttl,
        )

    @classmethod
    def for_youtube(cls, settings: YouTubeSettings) -> "ProviderPolicy":
        """YouTube: 1 call per 0.8s, 3 attempts, all three block tiers."""
        return cls(
            name="youtube",
            min_call_gap_seconds=settings.min_call_gap_seconds,
            max_retries=settings.max_retries,
            backoff_base_seconds=settings.backoff_base_seconds,
            quota_block_ttl=settings.quota_block_ttl,
            fatal_block_ttl=settings.fatal_block_ttl,
            transient_block_ttl=settings.transient_block_ttl,
            secret_params=frozenset({"key"}),
        )

    def backoff_seconds(self, attempt: int) -> float:
        """Sleep before the next attempt, attempt counting from 1."""
        return self.backoff_base_seconds * 2**attempt


def credential_fingerprint(secret: str | None) -> str:
    """Short, non-reversible-enough handle of a credential for block keys.

    Only the trailing 8 characters are used, so rotating the key clears every block.
    """
    if not secret:
        return "anonymous"
    return secret[-8:]


def build_cache_key(
    provider: str,
    user_id: str,
    path: str,
    params: Mapping[str, Any] | None = None,
    exclude: Collection[str] = (),
) -> str:
    """Cache key from provider, acting identity, path and sorted lower-cased params."""
    key = f"{provider}:{user_id}:{path}"
    if params:
        parts = [
            f"{str(name).lower()}={str(value).lower()}"
            for name, value in sorted(params.items())
            if name not in exclude
        ]
        if parts:
            key = f"{key}?{'&'.join(parts)}"
    return key


def block_key(provider: str, tier: str, fingerprint: str) -> str:
    return f"{provider}:{tier}:block:{fingerprint}"


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ApiGateway:
    """Serialized, cached, retrying access to one provider's HTTP API."""

    # Hey future me - one gateway per provider per process. The limiter lives on the
    # instance, so two gateways for the same provider would NOT share a queue. The app
    # container (api/dependencies.py) builds exactly one of each.
    def __init__(
        self,
        policy: ProviderPolicy,
        http_client: httpx.AsyncClient,
        cache: ResponseCache,
        classify: Classifier | None = None,
        limiter: SerialRateLimiter | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self._client = http_client
        self._cache = cache
        self._classify = classify or (lambda response: None)
        self._sleep = sleep
        self.limiter = limiter or SerialRateLimiter(
            min_gap_seconds=policy.min_call_gap_seconds,
            name=policy.name,
            clock=clock,
            sleep=sleep,
        )

    @property
    def provider(self) -> str:
        return self.policy.name

    async def call(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run an arbitrary provider task through the serial limiter."""
        return await self.limiter.run(task)

    async def request(
        self,
        method: str,
        path: str,
        *,
        user_id: str,
        credential: str | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cache_ttl: int = 0,
        ok_statuses: Collection[int] = (),
    ) -> Any:
        """Perform one logical provider request.

        Args:
            method: HTTP method
            path: Path relative to the client's base URL
            user_id: Acting tenant (scopes cache and block records)
            credential: Secret in use, only its fingerprint is stored
            params: Query parameters
            headers: Extra request headers (auth)
            cache_ttl: Seconds to cache a successful JSON body, 0 disables caching
            ok_statuses: Extra non-2xx statuses treated as success (returning None)

        Returns:
            Parsed JSON body, or None for empty bodies and ok_statuses

        Raises:
            QuotaExceededError: Quota block active or quota error returned
            FatalConfigurationError: Key rejected (now or within the fatal block window)
            TemporarilyBlockedError: Transient block window active
            RetriesExhaustedError: 429/5xx/network failures on every attempt
            ProviderHTTPError: Any other non-success response
        """
        cache_key = build_cache_key(
            self.provider, user_id, path, params, exclude=self.policy.secret_params
        )
        if cache_ttl > 0:
            cached = await self._cache.get(user_id, cache_key)
            if cached is not None:
                logger.debug(f"{self.provider} cache hit: {path}")
                return cached

        fingerprint = credential_fingerprint(credential)
        await self._raise_if_blocked(user_id, fingerprint)

        last_status: int | None = None
        for attempt in range(1, self.policy.max_retries + 1):
            try:
                response = await self.call(
                    lambda: self._client.request(
                        method, path, params=dict(params or {}), headers=dict(headers or {})
                    )
                )
            except httpx.TransportError as e:
                last_status = None
                logger.warning(
                    f"{self.provider} network failure on attempt {attempt}/"
                    f"{self.policy.max_retries}: {e}"
                )
            else:
                if response.is_success or response.status_code in ok_statuses:
                    data = self._parse_body(response) if response.is_success else None
                    if cache_ttl > 0 and data is not None:
                        await self._cache.set(user_id, cache_key, data, cache_ttl)
                    return data

                if not is_retryable_status(response.status_code):
                    await self._raise_for_response(response, user_id, fingerprint)

                last_status = response.status_code
                logger.warning(
                    f"{self.provider} transient error {response.status_code} on attempt "
                    f"{attempt}/{self.policy.max_retries}"
                )

            if attempt < self.policy.max_retries:
                await self._sleep(self.policy.backoff_seconds(attempt))

        await self._write_block(
            user_id,
            TRANSIENT_TIER,
            fingerprint,
            f"{self.provider} is unstable, requests paused briefly.",
            self.policy.transient_block_ttl,
        )
        raise RetriesExhaustedError(self.provider, self.policy.max_retries, last_status)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content or not response.content.strip():
            return None
        return response.json()

    async def _raise_for_response(
        self, response: httpx.Response, user_id: str, fingerprint: str
    ) -> None:
        error = self._classify(response)
        if isinstance(error, QuotaExceededError):
            await self._write_block(
                user_id, QUOTA_TIER, fingerprint, error.message, self.policy.quota_block_ttl
            )
            raise error
        if isinstance(error, FatalConfigurationError):
            await self._write_block(
                user_id, FATAL_TIER, fingerprint, error.message, self.policy.fatal_block_ttl
            )
            raise error
        if error is not None:
            raise error
        raise ProviderHTTPError(self.provider, response.status_code, response.text)

    async def _raise_if_blocked(self, user_id: str, fingerprint: str) -> None:
        tiers: list[tuple[str, int, type[ExternalServiceError], str]] = [
            (
                QUOTA_TIER,
                self.policy.quota_block_ttl,
                QuotaExceededError,
                f"{self.provider} quota exceeded for this key. Wait for quota reset.",
            ),
            (
                FATAL_TIER,
                self.policy.fatal_block_ttl,
                FatalConfigurationError,
                f"{self.provider} rejected this key. Check the credential configuration.",
            ),
            (
                TRANSIENT_TIER,
                self.policy.transient_block_ttl,
                TemporarilyBlockedError,
                f"{self.provider} temporarily unavailable. Requests paused, retry shortly.",
            ),
        ]
        for tier, ttl, error_type, default_message in tiers:
            if ttl <= 0:
                continue
            record = await self._cache.get(user_id, block_key(self.provider, tier, fingerprint))
            if record is not None:
                message = record.get("message") if isinstance(record, dict) else None
                raise error_type(self.provider, message or default_message)

    async def _write_block(
        self, user_id: str, tier: str, fingerprint: str, message: str, ttl: int
    ) -> None:
        if ttl <= 0:
            return
        logger.error(f"{self.provider} {tier} block for key ...{fingerprint} ({ttl}s): {message}")
        await self._cache.set(
            user_id,
            block_key(self.provider, tier, fingerprint),
            {"blocked_at": utc_now().isoformat(), "message": message},
            ttl,
        )


__all__ = [
    "ApiGateway",
    "Classifier",
    "ProviderPolicy",
    "block_key",
    "build_cache_key",
    "credential_fingerprint",
    "is_retryable_status",
]
