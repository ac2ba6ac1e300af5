"""
Error Handling Module
---------------------
Typed errors for the tool runtime.

Two families, never mixed:
- Configuration errors (ToolkitError subclasses) are raised synchronously
  at the call that caused them. They are the host's bug to fix.
- Per-invocation errors (ToolError records) are turned into error results
  inside an otherwise successful batch. They are never raised to the caller.

Every per-invocation error text starts with ERROR_PREFIX so downstream
consumers can detect failure by string pattern alone.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Iterable, Optional
import logging
import traceback


ERROR_PREFIX = "Error: "
EXECUTION_FAILURE_PREFIX = "Tool execution failed: "


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    CONFIGURATION = auto()   # Host misconfigured the toolkit
    UNKNOWN_TOOL = auto()    # No tool registered under the name
    UNAUTHORIZED = auto()    # Every owning group is inactive
    VALIDATION = auto()      # Payload rejected by the schema
    EXECUTION = auto()       # Tool raised, timed out, or was cancelled


# =============================================================================
# Configuration errors (raised)
# =============================================================================

class ToolkitError(Exception):
    """Base class for configuration errors raised by the toolkit."""
    category = ErrorCategory.CONFIGURATION


class GroupExistsError(ToolkitError):
    """Raised when creating a group whose name is taken."""

    def __init__(self, group_name: str):
        self.group_name = group_name
        super().__init__(f"Tool group '{group_name}' already exists")


class GroupNotFoundError(ToolkitError):
    """Raised when activating, deactivating or registering into an unknown group."""

    def __init__(self, group_names: Iterable[str]):
        if isinstance(group_names, str):
            group_names = [group_names]
        self.group_names = list(group_names)
        names = ", ".join(f"'{n}'" for n in self.group_names)
        super().__init__(f"Tool group {names} does not exist")


class SchemaConflictError(ToolkitError):
    """Raised when an extension schema redeclares base properties."""

    def __init__(self, conflicts: Iterable[str], tool_name: Optional[str] = None):
        self.conflicts = list(conflicts)
        self.tool_name = tool_name
        target = f" for tool '{tool_name}'" if tool_name else ""
        super().__init__(
            f"Extension schema conflicts with base schema{target} "
            f"on properties: {', '.join(self.conflicts)}"
        )


class ToolNotFoundError(ToolkitError):
    """Raised by management calls that name an unregistered tool."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class DuplicateCallError(ToolkitError):
    """Raised when one batch reuses a call id."""

    def __init__(self, call_ids: Iterable[str]):
        self.call_ids = list(call_ids)
        super().__init__(f"Duplicate call ids in batch: {', '.join(self.call_ids)}")


# =============================================================================
# Per-invocation errors (reported)
# =============================================================================

def error_message(exception: BaseException) -> str:
    """
    Message text of a failure, without its type.

    Falls back to the message of the first cause in the chain that has one.
    """
    current: Optional[BaseException] = exception
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current)
        if text:
            return text
        current = current.__cause__ or current.__context__
    return "unknown error"


@dataclass
class ToolError:
    """
    Structured per-invocation error.

    Becomes the single text segment of an error result.
    """
    category: ErrorCategory
    message: str
    tool_name: str = ""
    call_id: str = ""
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stack_trace: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        tool_name: str = "",
        call_id: str = "",
        details: Optional[Dict] = None
    ) -> "ToolError":
        """Normalize any tool failure, whatever its cause chain holds."""
        return cls(
            category=ErrorCategory.EXECUTION,
            message=EXECUTION_FAILURE_PREFIX + error_message(exception),
            tool_name=tool_name,
            call_id=call_id,
            details=details,
            stack_trace="".join(traceback.format_exception(exception)),
        )

    @property
    def text(self) -> str:
        """User-facing text with the fixed failure prefix."""
        return ERROR_PREFIX + self.message

    def __repr__(self) -> str:
        return f"ToolError({self.category.name}: {self.message})"


# Severity per category
LOG_LEVELS: Dict[ErrorCategory, int] = {
    ErrorCategory.CONFIGURATION: logging.ERROR,
    ErrorCategory.UNKNOWN_TOOL: logging.WARNING,
    ErrorCategory.UNAUTHORIZED: logging.WARNING,
    ErrorCategory.VALIDATION: logging.WARNING,
    ErrorCategory.EXECUTION: logging.ERROR,
}


def log_tool_error(logger: logging.Logger, error: ToolError) -> None:
    """Log an error result at its category's level."""
    level = LOG_LEVELS.get(error.category, logging.ERROR)
    logger.log(
        level,
        f"{error.category.name}: {error.message}",
        extra={"tool_name": error.tool_name, "call_id": error.call_id},
    )
    if error.stack_trace and level >= logging.ERROR:
        logger.debug(f"Stack trace:\n{error.stack_trace}")


# Convenience constructors

def create_unknown_tool_error(tool_name: str, call_id: str = "") -> ToolError:
    """Create the error for a call naming an unregistered tool."""
    return ToolError(
        category=ErrorCategory.UNKNOWN_TOOL,
        message=f"Tool not found: {tool_name}",
        tool_name=tool_name,
        call_id=call_id,
    )


def create_unauthorized_error(tool_name: str, call_id: str = "") -> ToolError:
    """Create the error for a call whose tool groups are all inactive."""
    return ToolError(
        category=ErrorCategory.UNAUTHORIZED,
        message=(
            f"Unauthorized tool call: '{tool_name}' is not available "
            f"because its tool group is inactive"
        ),
        tool_name=tool_name,
        call_id=call_id,
    )


def create_validation_error(tool_name: str, reason: str, call_id: str = "") -> ToolError:
    """Create the error for a payload rejected by the tool's schema."""
    return ToolError(
        category=ErrorCategory.VALIDATION,
        message=(
            f"Parameter validation failed for tool '{tool_name}': {reason}\n"
            f"Please correct the parameters and try again."
        ),
        tool_name=tool_name,
        call_id=call_id,
        details={"reason": reason},
    )
