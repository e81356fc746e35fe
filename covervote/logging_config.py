"""Logging setup shared by the engine, the API and the CLI.

Engine modules log through stdlib ``logging`` and pass structured fields via
``extra``. API modules log through structlog, which ``setup_logging`` routes
into the same stdlib handlers. Request-scoped fields bound with
``log_context`` show up on both.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import bound_contextvars, get_contextvars


TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Tokens and raw request payloads never reach the log output
_REDACTED_KEYS = ("password", "token", "secret", "authorization", "body")


def _redact(key: str, value: Any) -> Any:
    lowered = key.lower()
    return "[REDACTED]" if any(marker in lowered for marker in _REDACTED_KEYS) else value


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: fixed envelope, bound context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        fields = dict(get_contextvars())
        fields.update((k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS)
        entry.update((k, _redact(k, v)) for k, v in fields.items())

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _handlers(format: str, log_file: Optional[str]) -> List[logging.Handler]:
    formatter = StructuredFormatter() if format == "json" else logging.Formatter(TEXT_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _redact_event(logger, method_name, event_dict):
    return {key: _redact(key, value) for key, value in event_dict.items()}


def _to_record_kwargs(logger, method_name, event_dict):
    """Hand a structlog event to stdlib logging as message plus ``extra``.

    Keys a LogRecord already owns (``name``, ``message``, ...) get an
    ``event_`` prefix.
    """
    message = event_dict.pop("event", "")
    extra = {(f"event_{key}" if key in _RECORD_ATTRS else key): value for key, value in event_dict.items()}
    return {"msg": message, "extra": extra}


def setup_logging(format: str = "json", level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Install the process-wide handlers and route structlog through them.

    In JSON mode structlog events reach ``StructuredFormatter`` as plain
    records with their fields in ``extra``, so both kinds of record share
    one envelope and one rendering pass.

    Args:
        format: "json" for one object per line, anything else for plain text
        level: Root level name, case-insensitive
        log_file: Also write to this file when given
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _handlers(format, log_file):
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Request logs from uvicorn and the test client are noise at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
    ]
    if format == "json":
        processors += [
            structlog.processors.format_exc_info,
            _redact_event,
            _to_record_kwargs,
        ]
    else:
        processors += [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            _redact_event,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_event(logger_name: str, event: str, **fields) -> None:
    """Log a named event with structured fields at INFO."""
    logging.getLogger(logger_name).info(event, extra=fields)


def log_error(logger_name: str, event: str, error: Exception, **fields) -> None:
    """Log a failure with its traceback. Call from inside the ``except`` block."""
    fields["error_type"] = type(error).__name__
    logging.getLogger(logger_name).error(f"{event}: {error}", exc_info=True, extra=fields)


def log_performance(logger_name: str, operation: str, duration_ms: float, **fields) -> None:
    fields["duration_ms"] = duration_ms
    logging.getLogger(logger_name).info(
        f"{operation} completed in {duration_ms:.1f}ms", extra=fields
    )


def log_context(**fields: Any):
    """Bind fields to every record logged inside the block.

    Example:
        with log_context(reviewer="Ann"):
            selector.next_pair("Ann")
    """
    return bound_contextvars(**fields)


class Timer:
    """Measure a block in milliseconds.

    Example:
        with Timer() as timer:
            service.sync(batch)
        log_performance(__name__, "sync", timer.duration_ms)
    """

    duration_ms: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.duration_ms = (time.perf_counter() - self._started) * 1000
