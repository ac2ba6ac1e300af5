"""
Tool Protocol
-------------
The one contract every invocable capability satisfies, and the local
implementations of it.

A tool has an immutable name, a description, a JSON-schema parameter
descriptor and an async call(). Where the tool comes from is tagged by
ToolKind rather than by subclassing:

    LOCAL     FunctionTool wrapping a Python callable
    EXTERNAL  SchemaOnlyTool, declared here but executed by the host
    REMOTE    RemoteTool (tools.remote) backed by a remote client
"""

from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum, auto
from functools import partial
from typing import Any, Callable, Dict, Optional, Protocol, Union, runtime_checkable
import asyncio
import contextvars
import inspect

from .context import ExecutionContext
from .schema import ToolSchema, empty_schema


class ToolKind(Enum):
    """Where a tool's work actually happens."""
    LOCAL = auto()     # In-process Python callable
    EXTERNAL = auto()  # Declared only; the host executes it
    REMOTE = auto()    # Delegated to a remote client


@runtime_checkable
class Tool(Protocol):
    """Structural contract for anything the toolkit can register."""
    name: str
    description: str
    parameters: Dict[str, Any]
    kind: ToolKind

    async def call(self, args: Dict[str, Any], context: ExecutionContext) -> Any:
        ...


# Pool used for synchronous handlers; None means the event loop's default
_worker_pool: contextvars.ContextVar[Optional[Executor]] = contextvars.ContextVar(
    "worker_pool", default=None
)


def set_worker_pool(pool: Optional[Executor]) -> contextvars.Token:
    """Route synchronous handlers in the current context to pool."""
    return _worker_pool.set(pool)


def reset_worker_pool(token: contextvars.Token) -> None:
    _worker_pool.reset(token)


async def run_sync(func: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking callable on the worker pool without blocking the loop.

    The caller's context (batch_id included) is copied into the thread.
    """
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(_worker_pool.get(), partial(ctx.run, func, *args))


def _schema_dict(parameters: Union[ToolSchema, Dict[str, Any], None]) -> Dict[str, Any]:
    if parameters is None:
        return empty_schema()
    if isinstance(parameters, ToolSchema):
        return parameters.to_json_schema()
    return dict(parameters)


@dataclass
class FunctionTool:
    """
    Tool backed by a Python callable.

    The handler receives the merged payload dict, and the merged
    ExecutionContext as a second argument when pass_context is set.
    Coroutine functions are awaited; plain functions run on the worker
    pool so a slow handler never blocks other calls.
    """
    name: str
    description: str
    handler: Callable[..., Any]
    parameters: Dict[str, Any] = field(default_factory=empty_schema)
    pass_context: bool = False
    kind: ToolKind = field(default=ToolKind.LOCAL, init=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name must not be empty")
        self.parameters = _schema_dict(self.parameters)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    async def call(self, args: Dict[str, Any], context: ExecutionContext) -> Any:
        call_args = (args, context) if self.pass_context else (args,)
        if self.is_async:
            return await self.handler(*call_args)

        result = await run_sync(self.handler, *call_args)
        # Sync wrappers around coroutines
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionTool(name={self.name})"


@dataclass
class SchemaOnlyTool:
    """
    External tool: advertised to the model, executed by the host.

    Calling it through the toolkit is a failure the host should have
    avoided by checking Toolkit.is_external_tool() first.
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=empty_schema)
    kind: ToolKind = field(default=ToolKind.EXTERNAL, init=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name must not be empty")
        self.parameters = _schema_dict(self.parameters)

    async def call(self, args: Dict[str, Any], context: ExecutionContext) -> Any:
        raise RuntimeError(
            f"Tool '{self.name}' is an external tool and must be executed by the host"
        )

    def __repr__(self) -> str:
        return f"SchemaOnlyTool(name={self.name})"
