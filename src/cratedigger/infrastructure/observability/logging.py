"""Log setup: one stdout handler, JSON or compact text, correlation ids on every line."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

# Hey future me - every ingestion step and every API request gets its own correlation id, so
# "why did label 42 end up in error" is one grep: all gateway retries, cascade stages and
# repository writes of that step share the id. contextvars (not a global, not threading.local)
# because each asyncio task needs its own value.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")
TEXT_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(correlation_tag)s%(message)s"
JSON_FIELDS = "%(timestamp)s %(level)s %(name)s %(message)s"


def get_correlation_id() -> str:
    """Correlation id of the current task, "" outside a step or request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind an id to the current task; None mints a fresh 12-char hex id."""
    value = correlation_id if correlation_id is not None else uuid.uuid4().hex[:12]
    correlation_id_var.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Copies the task's correlation id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _exception_chain(error: BaseException) -> list[BaseException]:
    """Causes and contexts, root cause first."""
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain[::-1]


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter with compact exception chains.

    Root cause first, one ╰─► line per exception, and only frames from our own package:

        ERROR │ ingestion_service:201 │ [3f2a9c] Label 42 step failed
        ╰─► RetriesExhaustedError: discogs request retries exhausted after 4 attempts
            File "gateway.py", line 233, in request
    """

    def format(self, record: logging.LogRecord) -> str:
        tag = getattr(record, "correlation_id", "")
        record.correlation_tag = f"[{tag}] " if tag else ""
        return super().format(record)

    def formatException(self, ei: Any) -> str:
        error = ei[1]
        if error is None:
            return ""
        lines: list[str] = []
        for exc in _exception_chain(error):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or "cratedigger" not in frame.filename:
                    continue
                lines.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(JsonFormatter):
    """One JSON object per line: level, logger, source position, correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        )
        if tag := getattr(record, "correlation_id", ""):
            log_record["correlation_id"] = tag


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "cratedigger",
) -> None:
    """Replace the root handlers with a single stdout handler. Call once at startup.

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_format: JSON lines (for log shippers) instead of the compact text format
        app_name: Logged once with the resulting configuration
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    formatter: logging.Formatter = (
        CustomJsonFormatter(JSON_FIELDS, datefmt="%Y-%m-%d %H:%M:%S")
        if json_format
        else CompactExceptionFormatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S")
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
