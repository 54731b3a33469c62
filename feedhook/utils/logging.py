"""
Feedhook Logging
================

Logging for the delivery components. Each component logs through a
:class:`ComponentLogger` named after it. While an entry is being dispatched
the logger is bound to that entry's link and the webhook endpoint it goes
to, so every record of one dispatch can be followed from routing through
upload. The JSON formatter writes that context as top-level fields.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

ROOT_LOGGER = "feedhook"

# Record attributes promoted to top-level JSON fields
CONTEXT_FIELDS = ("component", "endpoint", "entry_link")

QUIET_LIBRARIES = ("urllib3", "requests", "PIL")

_STANDARD_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def _details(record: logging.LogRecord) -> Dict[str, Any]:
    """Extra attributes on ``record`` that are neither standard nor context fields."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_RECORD_FIELDS and key not in CONTEXT_FIELDS
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with dispatch context as top-level fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value:
                payload[field] = value

        details = _details(record)
        if details:
            payload["details"] = details

        payload["source"] = f"{record.module}:{record.funcName}:{record.lineno}"
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Short colored lines for a terminal, tagged with component and endpoint."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        clock = time.strftime("%H:%M:%S", time.localtime(record.created))

        tags = ""
        component = getattr(record, "component", None)
        if component:
            tags += f"[{component}] "
        endpoint = getattr(record, "endpoint", None)
        if endpoint:
            tags += f"<{endpoint}> "

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {tags}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ComponentLogger(logging.LoggerAdapter):
    """Adapter that stamps every record with the component's context."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs

    def bind(self, **context: Any) -> "ComponentLogger":
        """Return a logger for the same component with ``context`` added.

        Empty values are ignored so callers can bind optional fields directly.
        """
        bound = dict(self.extra)
        bound.update((key, value) for key, value in context.items() if value)
        return ComponentLogger(self.logger, bound)


def get_logger_for_component(component_name: str) -> ComponentLogger:
    """Logger for ``component_name`` under the ``feedhook`` hierarchy."""
    return ComponentLogger(
        logging.getLogger(f"{ROOT_LOGGER}.{component_name}"),
        {"component": component_name},
    )


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedhook.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install handlers on the ``feedhook`` logger.

    Console output is colored unless ``structured_logging`` is set. The log
    file, when configured, always receives JSON and rotates at
    ``max_file_size_mb``.

    Args:
        log_level: Level name for the ``feedhook`` logger
        log_file: Path of the rotating JSON log, or empty to disable it
        enable_console: Whether to log to stdout
        structured_logging: Whether console output is JSON as well
        max_file_size_mb: Size at which the log file rotates
        backup_count: Number of rotated files to keep

    Returns:
        The configured ``feedhook`` logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(log_level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(StructuredFormatter() if structured_logging else ColoredConsoleFormatter())
        root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(StructuredFormatter())
        root.addHandler(rotating)

    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    return root


class PerformanceLogger:
    """Times a block and logs its duration on the given logger.

    A block that raises is logged at error level; the exception propagates.
    """

    def __init__(self, logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.elapsed: Optional[float] = None
        self._started = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed = time.perf_counter() - self._started
        context = {**self.context, "duration_seconds": round(self.elapsed, 3)}

        if exc_type is None:
            self.logger.debug(f"{self.operation} took {self.elapsed:.3f}s", extra=context)
        else:
            self.logger.error(
                f"{self.operation} failed after {self.elapsed:.3f}s: {exc_val}", extra=context
            )
        return False
