# Core module - Error taxonomy and invocation lifecycle
# Configuration errors are raised; per-invocation errors become results

from .state_machine import (
    InvocationLifecycle, InvocationState, StateTransition, VALID_TRANSITIONS
)
from .errors import (
    ErrorCategory, ToolError, ToolkitError,
    GroupExistsError, GroupNotFoundError, SchemaConflictError,
    ToolNotFoundError, DuplicateCallError,
    ERROR_PREFIX, EXECUTION_FAILURE_PREFIX,
)

__all__ = [
    "InvocationLifecycle", "InvocationState", "StateTransition", "VALID_TRANSITIONS",
    "ErrorCategory", "ToolError", "ToolkitError",
    "GroupExistsError", "GroupNotFoundError", "SchemaConflictError",
    "ToolNotFoundError", "DuplicateCallError",
    "ERROR_PREFIX", "EXECUTION_FAILURE_PREFIX",
]
