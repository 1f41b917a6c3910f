"""Structured logging for webcam-snapshot.

Builds on Python's standard logging module with:
- Keyword arguments on every level method, kept as structured data
- JSON formatting option for log aggregation
- Context management so every line of a capture attempt names its camera
- A debug layout that adds caller file, line and function

Security Note:
    Camera names and URLs come from a config file. Pass them as keyword
    arguments rather than interpolating them into the message string:

    # SAFE - structured data is properly escaped
    logger.error("Screenshot failed", camera=cam.name, url=cam.url)

    # UNSAFE - could inject fake log entries with CRLF
    logger.error(f"Screenshot failed for {cam.name}")

Example:
    logger = get_logger(__name__)
    logger.info("Webcam capture started")

    with LogContext(camera="dock"):
        logger.info("Navigating")  # includes camera=dock
        logger.info("Saved screenshot", path="/tmp/out/dock.jpg")

    configure_logging(json_format=True)
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any, cast

ROOT_LOGGER_NAME = "webcam_snapshot"

DEFAULT_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s - %(message)s"
DEBUG_FORMAT = (
    "%(asctime)s.%(msecs)03d [%(levelname)s] "
    "{%(filename)s:%(lineno)d %(funcName)s} %(name)s - %(message)s"
)
DEFAULT_DATEFMT = "%Y/%m/%d %H:%M:%S"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger whose level methods accept structured keyword data.

    ``Logger.info()`` and friends forward unknown keyword arguments to
    ``_log()``; this class collects them, merges them over the active
    LogContext and attaches the result to the record as
    ``structured_data``.

    Usage:
        logger = get_logger("webcam_snapshot.scheduler")
        logger.info("Cycle complete", cycle=3, succeeded=2, failed=1)
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Emit a record carrying context and keyword data.

        Explicit kwargs win over LogContext values of the same name.

        Args:
            level: Numeric log level.
            msg: Log message, may contain % formatting placeholders.
            args: Arguments for % formatting.
            exc_info: Exception info, True for the current exception, or None.
            extra: Additional LogRecord attributes. 'structured_data' is
                added or overwritten.
            stack_info: If True, include stack trace in log.
            stacklevel: Stack frames to skip for caller attribution.
            **kwargs: Key-value pairs to include as structured data.
        """
        extra = dict(extra or {})
        extra["structured_data"] = {**_log_context.get(), **kwargs}

        # One more frame than the stdlib expects: this override.
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp.msec [LEVEL] name - message | key=value key=value
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        """Initialize the structured formatter.

        Args:
            fmt: Format string using LogRecord attributes. Defaults to
                DEFAULT_FORMAT (millisecond timestamps, braced level).
            datefmt: Date/time format for %(asctime)s. Defaults to
                DEFAULT_DATEFMT.
        """
        super().__init__(fmt or DEFAULT_FORMAT, datefmt or DEFAULT_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        """Format a record as text, appending structured data if any.

        Returns:
            Formatted log line, e.g.
            '2026/10/19 10:30:00.123 [INFO] webcam_snapshot.orchestrator
            - Saved screenshot | camera=dock path=/tmp/out/dock.jpg'
        """
        base = super().format(record)
        structured = getattr(record, "structured_data", None)
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """NDJSON formatter: one object per line, structured data at top level."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON object.

        Non-serializable values fall back to str(); exception info is
        rendered under 'exception'.

        Example:
            >>> json.loads(JSONFormatter().format(record))["camera"]
            'dock'
        """
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_dict.update(getattr(record, "structured_data", None) or {})

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format a value for human-readable structured log output.

    Example:
        >>> _format_value(None)
        'null'
        >>> _format_value("has spaces")
        '"has spaces"'
        >>> _format_value({"camera": "dock"})
        '{"camera": "dock"}'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"' if " " in value else value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


class LogContext:
    """Adds key-value pairs to every record logged inside a ``with`` block.

    Nests; inner values override outer ones. Backed by a ContextVar, so
    each thread starts with an empty context.

    Usage:
        with LogContext(camera="dock"):
            logger.info("Navigating")  # includes camera

            with LogContext(stage="finishing"):
                logger.info("Watermarking")  # includes camera and stage
    """

    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._token: contextvars.Token[dict[str, Any]] | None = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set({**_log_context.get(), **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    force: bool = False,
    debug: bool = False,
) -> None:
    """Configure the webcam-snapshot structured logging system.

    Sets up a single stream handler on the 'webcam_snapshot' logger.
    Idempotent: calls after the first are ignored unless ``force=True``.

    Args:
        level: Minimum level (int or name). Ignored when ``debug`` is True,
            which forces DEBUG.
        json_format: Use JSONFormatter (NDJSON) instead of the
            human-readable StructuredFormatter.
        stream: Output stream. Default: sys.stderr.
        force: Reconfigure even if already configured.
        debug: DEBUG level plus caller file, line and function in each
            text line.

    Example:
        >>> configure_logging(debug=True)
        >>> buffer = io.StringIO()
        >>> configure_logging(stream=buffer, force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(
            logging.DEBUG if debug else level,
            json_format,
            stream,
            DEBUG_FORMAT if debug else None,
        )


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    fmt: str | None = None,
) -> None:
    """Internal implementation of configure_logging (assumes lock is held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(fmt=fmt)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (assumes lock is held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Reset the logging system to unconfigured state (for testing).

    Removes all handlers from the webcam_snapshot logger. The next call
    to configure_logging() or get_logger() reinitializes it.
    """
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module.

    Configures logging with defaults (INFO, text, stderr) if
    configure_logging() has not been called yet.

    Args:
        name: Logger name, normally ``__name__``.

    Returns:
        StructuredLogger accepting ``logger.info("msg", key=value)``.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Saved screenshot", camera="dock", path="dock.jpg")
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)

    # setLoggerClass() guarantees a StructuredLogger for our hierarchy.
    return cast(StructuredLogger, logger)
