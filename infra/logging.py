"""
Toolbelt Centralized Logging
----------------------------
Structured logging with batch_id propagation.

Design:
- Every call_tools() invocation gets a unique batch_id
- batch_id propagates through: Toolkit -> Executor -> tool handlers
- Console output via Rich, file output as JSON lines
- Severity discipline: INFO=state, WARNING=rejected/lenient, ERROR=tool failure

Usage:
    from infra.logging import get_logger, BatchContext, log_batch_end

    logger = get_logger("tools.custom")

    with BatchContext() as batch_id:
        logger.info("Dispatching calls")
        log_batch_end(batch_id, total=3, failed=1)
"""

import contextvars
import json
import logging
import logging.handlers
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "toolbelt"

# Context variable for batch_id - thread-safe and async-safe
_batch_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "batch_id", default=None
)


def generate_batch_id() -> str:
    """Generate a unique batch ID."""
    return f"batch_{uuid.uuid4().hex[:12]}"


def get_batch_id() -> Optional[str]:
    """Get the current batch ID from context."""
    return _batch_id_var.get()


class BatchContext:
    """
    Context manager for batch scoping.

    Tasks created inside the block copy the context, so parallel calls
    keep the batch_id of the batch that spawned them.
    """

    def __init__(self, batch_id: Optional[str] = None):
        self._batch_id = batch_id or generate_batch_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _batch_id_var.set(self._batch_id)
        return self._batch_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _batch_id_var.reset(self._token)
            self._token = None


class BatchIdFilter(logging.Filter):
    """Logging filter that adds batch_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "batch_id", None) is None:
            record.batch_id = get_batch_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_FIELDS = ("tool_name", "call_id", "execution_time_ms", "success", "total", "failed")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "batch_id": getattr(record, "batch_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class BatchRichHandler(RichHandler):
    """Rich console handler that prefixes messages with the batch_id."""

    def render_message(self, record: logging.LogRecord, message: str):
        batch_id = getattr(record, "batch_id", "-")
        if batch_id != "-":
            message = f"[{batch_id}] {message}"
        return super().render_message(record, message)


# Global configuration state
_logging_initialized = False
_log_file_path: Optional[Path] = None


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    force: bool = False,
) -> None:
    """
    Configure the toolbelt logger hierarchy.

    Nothing is configured on import; hosts that already own logging
    can skip this entirely.

    Args:
        level: Logging level (default INFO)
        log_dir: Directory for the JSON log file (default: ./logs)
        console: Enable Rich console output
        file: Enable rotating JSON file output
        max_bytes: Rotate the file past this size
        backup_count: Rotated files to keep
        force: Reconfigure even if already configured
    """
    global _logging_initialized, _log_file_path

    if _logging_initialized and not force:
        return

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    batch_filter = BatchIdFilter()

    if console:
        console_handler = BatchRichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        console_handler.setLevel(level)
        console_handler.addFilter(batch_filter)
        root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)
        _log_file_path = log_path / "toolbelt.log"

        file_handler = logging.handlers.RotatingFileHandler(
            str(_log_file_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(batch_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def get_log_file_path() -> Optional[Path]:
    """Path of the JSON log file, if file logging is on."""
    return _log_file_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger in the toolbelt namespace.

    Args:
        name: Logger name (prefixed with 'toolbelt.' if not already)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_batch_end(
    batch_id: str,
    total: int,
    failed: int,
    execution_time_ms: float = 0.0,
) -> None:
    """
    Log the end of a batch with summary information.

    This is the BATCH_END boundary event for post-mortems.
    """
    logger = get_logger("tools.batch")
    extra = {
        "batch_id": batch_id,
        "total": total,
        "failed": failed,
        "success": failed == 0,
        "execution_time_ms": execution_time_ms,
    }
    level = logging.INFO if failed == 0 else logging.WARNING
    logger.log(
        level,
        f"BATCH_END: total={total}, failed={failed}, time={execution_time_ms:.1f}ms",
        extra=extra,
    )
