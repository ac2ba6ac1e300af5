# Tools module - Tool registry, groups, context and execution
# Each tool: name, JSON schema, async call; kind tags where it runs
# Every call goes through authorization and validation before dispatch

from .tool import Tool, ToolKind, FunctionTool, SchemaOnlyTool
from .remote import RemoteClient, RemoteTool, RemoteClientManager
from .registry import ToolRegistry, RegisteredTool
from .groups import ToolGroup, ToolGroupManager
from .context import ExecutionContext, ContextStore, ContextBuilder
from .schema import ToolSchema, ToolParameter, ParameterType, compose_schema, hide_properties
from .validator import validate_input
from .models import ToolCall, ToolResult, TextSegment, DataSegment
from .executor import ToolExecutor
from .meta import ResetEquippedTools, META_TOOL_NAME
from .toolkit import Toolkit

__all__ = [
    "Tool",
    "ToolKind",
    "FunctionTool",
    "SchemaOnlyTool",
    "RemoteClient",
    "RemoteTool",
    "RemoteClientManager",
    "ToolRegistry",
    "RegisteredTool",
    "ToolGroup",
    "ToolGroupManager",
    "ExecutionContext",
    "ContextStore",
    "ContextBuilder",
    "ToolSchema",
    "ToolParameter",
    "ParameterType",
    "compose_schema",
    "hide_properties",
    "validate_input",
    "ToolCall",
    "ToolResult",
    "TextSegment",
    "DataSegment",
    "ToolExecutor",
    "ResetEquippedTools",
    "META_TOOL_NAME",
    "Toolkit",
]
