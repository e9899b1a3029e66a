"""
Structured logging for oro-client.

Every record carries the fields of the active ``LogContext`` (trace id,
request id, registry, method, url). The context lives in a ``ContextVar`` so
concurrent requests on one client each log their own ids.

Records are emitted as JSON (one object per line) or as
``message key=value ...`` text.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from typing import TYPE_CHECKING, Any

from .serialization import JSONDecodeError, fast_json_dumps, fast_json_loads

if TYPE_CHECKING:
    from .config.logging import LoggingConfig


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dumps(data: dict[str, Any]) -> str:
    return fast_json_dumps(data, default=str).decode("utf-8")


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Context and records
# =============================================================================


@dataclass(frozen=True)
class LogContext:
    """Fields attached to every record logged while the context is active."""

    trace_id: str | None = None
    request_id: str | None = None
    registry: str | None = None
    method: str | None = None
    url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = _without_none({f.name: getattr(self, f.name) for f in dataclasses.fields(self) if f.name != "extra"})
        d.update(self.extra)
        return d

    def with_update(self, *, extra: dict[str, Any] | None = None, **fields: Any) -> LogContext:
        """Copy with ``fields`` replaced and ``extra`` merged in."""
        return dataclasses.replace(self, extra={**self.extra, **(extra or {})}, **fields)


@dataclass
class RequestLog:
    """One attempt at a registry request."""

    request_id: str
    method: str
    url: str
    timestamp: str = field(default_factory=_utcnow)
    attempt: int = 1
    authorization: str | None = None
    cache_enabled: bool = False
    cache_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none(dataclasses.asdict(self))


@dataclass
class ResponseLog:
    """The final response (or failure) of a registry request."""

    request_id: str
    method: str
    url: str
    success: bool = True
    status_code: int | None = None
    error: str | None = None
    timestamp: str = field(default_factory=_utcnow)
    duration_ms: float | None = None
    content_length: int | None = None
    cache_hit: bool = False
    revalidated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _without_none(dataclasses.asdict(self))


# =============================================================================
# Structured Logger
# =============================================================================

_logger_ids = count()


class StructuredLogger:
    """
    Wrapper around a stdlib logger that adds context fields and typed events.

    Example:
        ```python
        logger = StructuredLogger("oro_client", level="DEBUG")

        with logger.request_context("GET", "https://registry.npmjs.org/react"):
            logger.info("fetching packument")
        ```

    A handler is only installed when the underlying stdlib logger has none,
    so applications that configure ``logging`` themselves keep control.
    """

    def __init__(
        self,
        name: str = "oro_client",
        level: str = "INFO",
        json_output: bool = True,
        include_timestamp: bool = True,
        redact_auth: bool = True,
        log_file: str | None = None,
    ):
        self.name = name
        self.json_output = json_output
        self.redact_auth = redact_auth

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))
        self._context: ContextVar[LogContext] = ContextVar(
            f"oro_log_context_{next(_logger_ids)}", default=LogContext()
        )

        if not self._logger.handlers:
            handler: logging.Handler
            if log_file:
                handler = logging.FileHandler(log_file, encoding="utf-8")
            else:
                handler = logging.StreamHandler(sys.stderr)
            if json_output:
                handler.setFormatter(JSONFormatter())
            else:
                color = not log_file and sys.stderr.isatty()
                handler.setFormatter(TextFormatter(include_timestamp=include_timestamp, color=color))
            self._logger.addHandler(handler)

    @classmethod
    def from_config(cls, config: LoggingConfig, name: str = "oro_client") -> StructuredLogger:
        return cls(
            name=name,
            level=config.level,
            json_output=config.format == "json",
            include_timestamp=config.include_timestamp,
            redact_auth=config.redact_auth,
            log_file=str(config.log_file) if config.log_file else None,
        )

    @property
    def context(self) -> LogContext:
        return self._context.get()

    @contextmanager
    def trace_context(self, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
        """Run a block under ``trace_id`` (generated when missing). Yields the trace id."""
        trace_id = trace_id or generate_trace_id()
        token = self._context.set(self.context.with_update(trace_id=trace_id, **fields))
        try:
            yield trace_id
        finally:
            self._context.reset(token)

    @contextmanager
    def request_context(
        self,
        method: str,
        url: str,
        registry: str | None = None,
        request_id: str | None = None,
    ) -> Iterator[str]:
        """Run a block as one registry request. Yields the request id."""
        request_id = request_id or generate_request_id()
        with self.trace_context(
            self.context.trace_id,
            request_id=request_id,
            method=method,
            url=url,
            registry=registry,
        ):
            yield request_id

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        record: dict[str, Any] = {"message": message, **self.context.to_dict()}
        if event_type:
            record["event_type"] = event_type
        if data:
            record.update(data)

        if self.json_output:
            self._logger.log(level, _dumps(record))
        else:
            fields = " ".join(f"{k}={v}" for k, v in record.items() if k != "message")
            self._logger.log(level, f"{message} {fields}".rstrip())

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, data=fields)

    # Typed events

    def log_request(self, request: RequestLog) -> None:
        data = request.to_dict()
        if "authorization" in data and self.redact_auth:
            data["authorization"] = redact_auth(data["authorization"])
        self._log(logging.DEBUG, f"{request.method} {request.url}", event_type="request", data=data)

    def log_response(self, response: ResponseLog) -> None:
        """DEBUG for successful responses, WARNING otherwise."""
        suffix = ""
        if response.cache_hit:
            suffix += " (cached)"
        if response.duration_ms is not None:
            suffix += f" ({response.duration_ms:.0f}ms)"
        self._log(
            logging.DEBUG if response.success else logging.WARNING,
            f"{response.method} {response.url} -> {response.status_code}{suffix}",
            event_type="response",
            data=response.to_dict(),
        )

    def log_cache_hit(self, cache_key: str, url: str | None = None) -> None:
        self._log(logging.DEBUG, f"Cache hit: {url or cache_key}", event_type="cache_hit", data={"cache_key": cache_key})

    def log_cache_miss(self, cache_key: str, url: str | None = None) -> None:
        self._log(logging.DEBUG, f"Cache miss: {url or cache_key}", event_type="cache_miss", data={"cache_key": cache_key})

    def log_cache_revalidated(self, cache_key: str, url: str | None = None) -> None:
        self._log(
            logging.DEBUG,
            f"Cache revalidated: {url or cache_key}",
            event_type="cache_revalidated",
            data={"cache_key": cache_key},
        )

    def log_retry(self, attempt: int, delay: float, reason: str) -> None:
        self._log(
            logging.INFO,
            f"Retrying in {delay:.2f}s (attempt {attempt}): {reason}",
            event_type="retry",
            data={"attempt": attempt, "delay_s": round(delay, 3)},
        )

    def log_error(self, error: Exception, message: str | None = None, **fields: Any) -> None:
        """Log an exception; OroClientError code, help and context are included."""
        data: dict[str, Any] = {"error_type": type(error).__name__, "error_message": str(error), **fields}

        code = getattr(error, "code", None)
        if code is not None:
            data["error_code"] = str(getattr(code, "value", code))
        if hasattr(error, "retryable"):
            data["retryable"] = error.retryable
        if getattr(error, "help", None):
            data["help"] = error.help
        context = getattr(error, "context", None)
        if context is not None and hasattr(context, "to_dict"):
            data["error_context"] = context.to_dict()

        self._log(logging.ERROR, message or f"Error: {error}", event_type="error", data=data)


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line; JSON messages are merged into the object."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        data: dict[str, Any] = {"timestamp": _utcnow(), "level": record.levelname, "logger": record.name}
        try:
            parsed = fast_json_loads(message)
        except JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            data.update(parsed)
        else:
            data["message"] = message
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return _dumps(data)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS.mmm LEVEL message`` with optional ANSI level colors."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, include_timestamp: bool = True, color: bool = False) -> None:
        super().__init__()
        self.include_timestamp = include_timestamp
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.color and record.levelname in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelname]}{level}{self.RESET}"
        line = f"{level} {record.getMessage()}"
        if self.include_timestamp:
            line = f"{datetime.now(timezone.utc).strftime('%H:%M:%S.%f')[:-3]} {line}"
        return line


# =============================================================================
# Utilities
# =============================================================================


def generate_trace_id() -> str:
    return f"trace_{uuid.uuid4().hex[:16]}"


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def redact_auth(value: str | None) -> str:
    """
    Mask an Authorization header value or a bare token.

    The scheme is kept and at most the first and last four characters of the
    secret survive: ``Bearer npm_abcdefghijkl`` -> ``Bearer npm_...ijkl``.
    """
    if not value:
        return "<not set>"
    scheme, _, secret = value.partition(" ")
    if not secret:
        scheme, secret = "", value
    masked = "***" if len(secret) <= 8 else f"{secret[:4]}...{secret[-4:]}"
    return f"{scheme} {masked}" if scheme else masked


def truncate_for_log(text: str, max_length: int = 200) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


@dataclass
class Timer:
    """Wall-clock stopwatch in milliseconds; starts on creation."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop and return the elapsed milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return (end - self.start_time) * 1000


# =============================================================================
# Default logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str = "oro_client") -> StructuredLogger:
    """The shared default logger (text output), created on first use."""
    global _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name, json_output=False)
    return _default_logger


def configure_logging(config: LoggingConfig | None = None, **kwargs: Any) -> StructuredLogger:
    """Replace the default logger, from a LoggingConfig or StructuredLogger keyword arguments."""
    global _default_logger
    _default_logger = StructuredLogger.from_config(config) if config is not None else StructuredLogger(**kwargs)
    return _default_logger


__all__ = [
    "LogContext",
    "RequestLog",
    "ResponseLog",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "generate_trace_id",
    "generate_request_id",
    "redact_auth",
    "truncate_for_log",
    "get_logger",
    "configure_logging",
]
