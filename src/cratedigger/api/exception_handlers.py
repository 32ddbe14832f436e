"""Custom exception handlers for the FastAPI application.

Domain exceptions become HTTP responses here and nowhere else:

    EntityNotFoundException   → 404
    ValidationException       → 422
    InvalidStateException     → 409
    QuotaExceededError        → 429
    TemporarilyBlockedError   → 503 (+ Retry-After)
    ConfigurationError        → 503
    FatalConfigurationError   → 503
    ExternalServiceError      → 502
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cratedigger.domain.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    ExternalServiceError,
    FatalConfigurationError,
    InvalidStateException,
    QuotaExceededError,
    TemporarilyBlockedError,
    ValidationException,
)

logger = logging.getLogger(__name__)

BLOCKED_RETRY_AFTER_SECONDS = 60


# Pydantic's exc.errors() can carry the raw body as bytes, which JSONResponse can't encode
def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    def _sanitize_value(value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, dict):
            return {k: _sanitize_value(v) for k, v in value.items()}
        if isinstance(value, list | tuple):
            return [_sanitize_value(item) for item in value]
        return value

    return [_sanitize_value(error) for error in errors]


def _provider_payload(exc: ExternalServiceError) -> dict[str, Any]:
    return {"detail": exc.message, "provider": exc.provider}


# Hey future me - FastAPI picks the handler by walking the exception's MRO, so the specific
# provider errors (quota, fatal, blocked) win over the generic ExternalServiceError one.
# Register everything during app setup, before the first request.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain and request validation exceptions."""

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={"path": request.url.path, "entity_type": exc.entity_type},
        )
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(
        request: Request, exc: ValidationException
    ) -> JSONResponse:
        logger.warning("Validation error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": exc.message}
        )

    @app.exception_handler(InvalidStateException)
    async def invalid_state_handler(request: Request, exc: InvalidStateException) -> JSONResponse:
        logger.warning("Invalid state at %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})

    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
        logger.warning("Quota exceeded at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=_provider_payload(exc)
        )

    @app.exception_handler(TemporarilyBlockedError)
    async def temporarily_blocked_handler(
        request: Request, exc: TemporarilyBlockedError
    ) -> JSONResponse:
        logger.warning("Provider paused at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_provider_payload(exc),
            headers={"Retry-After": str(BLOCKED_RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(FatalConfigurationError)
    async def fatal_configuration_handler(
        request: Request, exc: FatalConfigurationError
    ) -> JSONResponse:
        logger.error("Provider rejected credential at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_provider_payload(exc)
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": exc.message}
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        logger.error(
            "External service error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "provider": exc.provider},
        )
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_provider_payload(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        sanitized = _sanitize_validation_errors(list(exc.errors()))
        logger.warning("Request validation error at %s: %s", request.url.path, sanitized)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": sanitized}
        )
