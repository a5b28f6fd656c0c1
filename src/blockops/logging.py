"""
Structured logging for blockops.

Library modules log through ``logging.getLogger(__name__)``. The dispatch
pipeline additionally emits one structured record per request through
:class:`StructuredLogger`, rendered as JSON lines or human-readable text.
"""

from __future__ import annotations

import copy
import json
import logging
import sys
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import LoggingConfig


@dataclass
class LogContext:
    """Context information attached to log records."""

    request_id: str | None = None
    operation: str | None = None
    identity: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        return LogContext(
            request_id=kwargs.get("request_id", self.request_id),
            operation=kwargs.get("operation", self.operation),
            identity=kwargs.get("identity", self.identity),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


@dataclass
class DispatchLog:
    """One dispatched request."""

    request_id: str
    operation: str
    method: str
    status: int
    latency_ms: float
    identity: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.status < 400

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class StructuredLogger:
    """
    Logger with structured output and per-request context.

    Example:
        ```python
        logger = StructuredLogger("blockops.dispatch", json_output=False)
        request_log = logger.bind(request_id=generate_request_id(), operation="getUser")
        request_log.info("arguments validated")
        ```
    """

    def __init__(
        self,
        name: str = "blockops",
        level: str = "INFO",
        json_output: bool = True,
    ):
        self.name = name
        self.json_output = json_output

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))
        self._context = LogContext()

        if not self._logger.hasHandlers():
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context

    def bind(self, **kwargs) -> StructuredLogger:
        """Return a logger sharing this output whose records carry extra context."""
        bound = copy.copy(self)
        bound._context = self._context.with_update(**kwargs)
        return bound

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        record_data = {"message": message, **self._context.to_dict()}
        if event_type:
            record_data["event_type"] = event_type
        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str), exc_info=exc_info)
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}".rstrip(), exc_info=exc_info)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    def log_dispatch(self, record: DispatchLog) -> None:
        level = logging.INFO if record.success else logging.WARNING
        message = f"{record.method} /{record.operation} -> {record.status} ({record.latency_ms:.0f}ms)"
        self._log(level, message, event_type="dispatch", data=record.to_dict())

    def log_error(self, error: Exception, message: str | None = None, **kwargs) -> None:
        """Log an unexpected error with its traceback."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }
        code = getattr(error, "code", None)
        if code is not None:
            error_data["error_code"] = str(getattr(code, "value", code))
        self._log(logging.ERROR, message or f"Error: {error}", event_type="error", data=error_data, exc_info=True)


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        try:
            message_data = json.loads(record.getMessage())
        except (json.JSONDecodeError, TypeError):
            message_data = None
        if isinstance(message_data, dict):
            log_data.update(message_data)
        else:
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def redact_token(token: str | None) -> str:
    """Redact a bearer credential for safe logging."""
    if not token:
        return "<not set>"
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


@dataclass
class Timer:
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


def configure_logging(config: LoggingConfig) -> StructuredLogger:
    """
    Install the root ``blockops`` handler and return the dispatch logger.

    Library loggers under ``blockops.*`` inherit the handler and level.
    """
    json_output = config.format == "json"
    root = logging.getLogger("blockops")
    root.setLevel(getattr(logging, config.level.upper()))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
        root.addHandler(handler)
    return StructuredLogger("blockops.dispatch", level=config.level, json_output=json_output)


__all__ = [
    "LogContext",
    "DispatchLog",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "generate_request_id",
    "redact_token",
    "configure_logging",
]
