"""
Logging and error handling framework for pane-orchestrator.

This module provides:
- Structured logging configuration
- Custom exception classes
- Context-aware logging utilities
- Audit logging for session lifecycle operations
"""

import functools
import inspect
import json
import logging
import sys
import traceback
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogContext(str, Enum):
    """Log context categories for structured logging."""

    SESSION = "session"
    LAYOUT = "layout"
    PANE = "pane"
    MONITOR = "monitor"
    TMUX = "tmux"


class PaneOrchestratorException(Exception):
    """Base exception class for all pane-orchestrator errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)


class SessionNotFound(PaneOrchestratorException):
    """A session id is not present in the registry."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session {session_id} not found", context={"session_id": session_id}
        )
        self.session_id = session_id


class MultiplexerCommandFailed(PaneOrchestratorException):
    """A tmux command exited non-zero or could not be spawned."""

    def with_operation(self, message: str, **context: Any) -> "MultiplexerCommandFailed":
        """Return a copy of this error prefixed with the calling operation."""
        return type(self)(
            f"{message}: {self.message}", context={**self.context, **context}
        )


class MultiplexerTimeout(MultiplexerCommandFailed):
    """A tmux command did not finish within the configured timeout."""

    pass


class PartialLayoutFailure(MultiplexerCommandFailed):
    """A layout plan failed after some of its operations were applied.

    The session stays registered with the operations that succeeded;
    nothing is rolled back.
    """

    def __init__(
        self,
        message: str,
        applied_ops: int,
        total_ops: int,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            context={
                "applied_ops": applied_ops,
                "total_ops": total_ops,
                **(context or {}),
            },
        )
        self.applied_ops = applied_ops
        self.total_ops = total_ops

    def with_operation(self, message: str, **context: Any) -> "PartialLayoutFailure":
        return PartialLayoutFailure(
            f"{message}: {self.message}",
            applied_ops=self.applied_ops,
            total_ops=self.total_ops,
            context={**self.context, **context},
        )


class ConfigurationError(PaneOrchestratorException):
    """Errors related to configuration and setup."""

    pass


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    standard_fields = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "context",
        "session_id",
        "agent_id",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        if getattr(record, "session_id", None):
            log_data["session_id"] = record.session_id

        if getattr(record, "agent_id", None):
            log_data["agent_id"] = record.agent_id

        for key, value in record.__dict__.items():
            if key not in self.standard_fields and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


# LogRecord attributes that Logger.makeRecord refuses to overwrite from extra
_RESERVED_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
}


class ContextualLogger:
    """Logger with context management for structured logging."""

    def __init__(self, name: str, context: LogContext):
        self.logger = logging.getLogger(name)
        self.context = context.value
        self.session_id: str | None = None
        self.agent_id: str | None = None

    def set_session_id(self, session_id: str) -> None:
        """Set the session ID for all subsequent log messages."""
        self.session_id = session_id

    def set_agent_id(self, agent_id: str) -> None:
        """Set the agent ID for all subsequent log messages."""
        self.agent_id = agent_id

    def _extra(self, extra_context: dict[str, Any] | None) -> dict[str, Any]:
        extra: dict[str, Any] = {"context": self.context}

        if self.session_id:
            extra["session_id"] = self.session_id

        if self.agent_id:
            extra["agent_id"] = self.agent_id

        for key, value in (extra_context or {}).items():
            if key in _RESERVED_RECORD_KEYS:
                key = f"extra_{key}"
            extra[key] = value

        return extra

    def _log(
        self, level: int, message: str, extra_context: dict[str, Any] | None = None
    ) -> None:
        """Internal logging method with context injection."""
        # stacklevel points the record at the caller of debug/info/...
        self.logger.log(
            level, message, extra=self._extra(extra_context), stacklevel=3
        )

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exception: Exception | None = None, **kwargs) -> None:
        """Log error message with context and optional exception."""
        if exception:
            self.logger.error(
                message,
                exc_info=exception,
                extra=self._extra(kwargs),
                stacklevel=2,
            )
        else:
            self._log(logging.ERROR, message, kwargs)


def get_logger(name: str, context: LogContext) -> ContextualLogger:
    """Get a contextual logger instance."""
    return ContextualLogger(name, context)


def setup_logging(
    log_level: str | LogLevel = LogLevel.INFO,
    log_file: Path | None = None,
    enable_structured: bool = True,
    enable_console: bool = True,
) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Minimum log level to capture
        log_file: Optional file path for log output
        enable_structured: Use JSON structured logging format
        enable_console: Enable console output
    """
    if isinstance(log_level, LogLevel):
        log_level = log_level.value

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    def _formatter() -> logging.Formatter:
        if enable_structured:
            return StructuredFormatter()
        return logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers: list[logging.Handler] = []

    if enable_console:
        # stderr keeps CLI --json output on stdout parseable
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter())
        handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_formatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper()))
    if not handlers:
        # without a handler, records would reach logging.lastResort on stderr
        handlers.append(logging.NullHandler())
    for handler in handlers:
        root_logger.addHandler(handler)

    # libtmux logs every command it runs at debug level
    logging.getLogger("libtmux").setLevel(logging.WARNING)


def audit_log(action: str, log_context: LogContext = LogContext.SESSION):
    """Decorator for audit logging of important operations.

    Works for both plain and ``async`` functions.
    """

    def decorator(func: Callable) -> Callable:
        logger = get_logger(f"{func.__module__}.audit", log_context)

        def _started() -> None:
            logger.info(
                f"Audit: {action} started", action=action, function=func.__name__
            )

        def _completed() -> None:
            logger.info(
                f"Audit: {action} completed successfully",
                action=action,
                function=func.__name__,
                status="success",
            )

        def _failed(e: Exception) -> None:
            logger.error(
                f"Audit: {action} failed",
                action=action,
                function=func.__name__,
                status="error",
                error=str(e),
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                _started()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(e)
                    raise
                _completed()
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            _started()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(e)
                raise
            _completed()
            return result

        return wrapper

    return decorator
