# Infrastructure module - Logging and configuration

from .logging import (
    get_logger, configure_logging, BatchContext,
    log_batch_end, get_batch_id, generate_batch_id
)
from .config import ExecutionConfig, ToolkitConfig, TOOL_DEFAULTS, load_config

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "BatchContext",
    "log_batch_end",
    "get_batch_id",
    "generate_batch_id",
    # Config
    "ExecutionConfig",
    "ToolkitConfig",
    "TOOL_DEFAULTS",
    "load_config",
]
