"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Root of every error the crawler raises on purpose."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - always use a specific subclass so callers can
    # catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """A label, release, track, match or queue item id that the tenant does not own."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input or entity validation fails."""


class InvalidStateException(DomainException):
    """A state machine refused the requested move.

    Example: moving a label from paused straight to complete, or marking an already
    played queue item as played again.
    """


class ConfigurationError(DomainException):
    """A credential or setting the operation needs is missing.

    HTTP Status: 503
    """


class ExternalServiceError(DomainException):
    """External provider (Discogs, YouTube, storefront) returned an error.

    Every provider error carries the provider name so logs and error handlers can tell
    "Discogs is down" from "YouTube key is broken" without string matching.

    HTTP Status: 502 (Bad Gateway)
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderHTTPError(ExternalServiceError):
    """Non-retryable provider response that no classifier recognised."""

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        super().__init__(provider, f"{provider} error {status_code}: {body[:500]}")
        self.status_code = status_code
        self.body = body


class RetriesExhaustedError(ExternalServiceError):
    """429/5xx/network failures persisted through every retry attempt."""

    def __init__(self, provider: str, attempts: int, last_status: int | None = None) -> None:
        detail = f"status {last_status}" if last_status is not None else "network failure"
        super().__init__(
            provider, f"{provider} request retries exhausted after {attempts} attempts ({detail})."
        )
        self.attempts = attempts
        self.last_status = last_status


class QuotaExceededError(ExternalServiceError):
    """Provider signalled quota exhaustion for the credential in use.

    Callers should degrade gracefully (disable play controls, skip searches) instead of
    surfacing a raw error.

    HTTP Status: 429
    """


class FatalConfigurationError(ExternalServiceError):
    """Provider permanently rejects the credential for this capability.

    Hey future me - this one must NEVER be swallowed as "weak match"! If the YouTube key
    isn't allowed to call search, every single track would silently degrade. Let it
    propagate up to the label so the user sees it immediately.
    """


class TemporarilyBlockedError(ExternalServiceError):
    """Calls paused after repeated transient failures (short block window)."""


def is_fatal_config_error(error: BaseException) -> bool:
    """Check if an error is a fatal provider misconfiguration."""
    return isinstance(error, FatalConfigurationError)


def is_quota_error(error: BaseException) -> bool:
    """Check if an error is a provider quota exhaustion."""
    return isinstance(error, QuotaExceededError)


__all__ = [
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "FatalConfigurationError",
    "InvalidStateException",
    "ProviderHTTPError",
    "QuotaExceededError",
    "RetriesExhaustedError",
    "TemporarilyBlockedError",
    "ValidationException",
    "is_fatal_config_error",
    "is_quota_error",
]
