"""
Structured Logging Configuration.

Configures structlog for:
- JSON output for collected results
- Colored console output for interactive sweeps
- Per-run context (run id, batch size, indexing, threads)
- Worker thread names on events emitted from the pool

Everything goes to stderr; stdout is reserved for throughput lines.
"""

import logging
import re
import sys
import threading
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from structlog.types import EventDict, WrappedLogger

# Fields bound for the duration of a benchmark run
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

_SECRET_KEYS = ("password", "secret", "token", "credential")
_URI_USERINFO = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE)


class LogContext:
    """
    Context manager binding fields to every event logged inside it.

    Worker threads only inherit the fields when their callables run in a
    copied context (see WorkerPool.submit_all).

    Usage:
        with LogContext(run_id="3f2a", batch_size=10):
            logger.info("Batch committed")
    """

    def __init__(self, **kwargs: Any):
        self._fields = kwargs
        self._token = None

    def __enter__(self):
        merged = {**_log_context.get(), **self._fields}
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token:
            _log_context.reset(self._token)
        return False

    @staticmethod
    def current() -> dict[str, Any]:
        """Context visible to the calling thread."""
        return dict(_log_context.get())


def add_log_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add run context; explicit event fields win."""
    for key, value in LogContext.current().items():
        event_dict.setdefault(key, value)
    return event_dict


def add_thread_name(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag events logged from pool workers."""
    name = threading.current_thread().name
    if name != "MainThread":
        event_dict.setdefault("thread", name)
    return event_dict


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_credentials(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask secret-looking fields and user info embedded in store URIs."""
    for key, value in list(event_dict.items()):
        if not isinstance(value, str):
            continue
        if any(s in key.lower() for s in _SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        elif "://" in value:
            event_dict[key] = _URI_USERINFO.sub(r"\g<scheme>***@", value)
    return event_dict


def configure_logging(
    level: str = "WARNING",
    format: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structlog for the harness.

    Safe to call repeatedly; the last call wins.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" or "console")
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        add_log_context,
        add_thread_name,
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
    ]

    if format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        processors = shared_processors + [structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        processors = shared_processors + [renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )

    # The driver logs every routing table refresh at INFO
    logging.getLogger("neo4j").setLevel(logging.WARNING)
