"""
Remote Tools
------------
Tools served by a remote client (an MCP-style server connection).

A client lists its tools once at registration; each becomes a RemoteTool
registered with origin_client set to the client's name, so removing the
client removes exactly its tools.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, runtime_checkable
import logging
import threading

from .context import ExecutionContext
from .groups import ToolGroupManager
from .registry import ToolRegistry
from .schema import empty_schema
from .tool import ToolKind


@runtime_checkable
class RemoteClient(Protocol):
    """
    Connection to a remote tool server.

    list_tools() returns dicts with "name", "description" and
    "input_schema" keys.
    """
    name: str

    async def initialize(self) -> None:
        ...

    async def list_tools(self) -> List[Dict[str, Any]]:
        ...

    async def call_tool(self, name: str, args: Dict[str, Any]) -> Any:
        ...

    async def close(self) -> None:
        ...


@dataclass
class RemoteTool:
    """Tool whose work is delegated to a remote client."""
    client: RemoteClient = field(repr=False)
    name: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=empty_schema)
    kind: ToolKind = field(default=ToolKind.REMOTE, init=False)

    @property
    def client_name(self) -> str:
        return self.client.name

    async def call(self, args: Dict[str, Any], context: ExecutionContext) -> Any:
        return await self.client.call_tool(self.name, args)


def should_register(
    tool_name: str,
    enable_tools: Optional[Iterable[str]],
    disable_tools: Optional[Iterable[str]]
) -> bool:
    """None enables everything; disable wins over enable."""
    if disable_tools is not None and tool_name in set(disable_tools):
        return False
    if enable_tools is not None:
        return tool_name in set(enable_tools)
    return True


RegisterCallback = Callable[..., None]


class RemoteClientManager:
    """
    Tracks registered remote clients and the tools they contributed.

    register_tool is the toolkit's own register(), so remote tools go
    through the same schema composition and group bookkeeping as any
    other tool.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        groups: ToolGroupManager,
        register_tool: RegisterCallback
    ):
        self._registry = registry
        self._groups = groups
        self._register_tool = register_tool
        self._clients: Dict[str, RemoteClient] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger("toolbelt.tools.remote")

    async def register_client(
        self,
        client: RemoteClient,
        enable_tools: Optional[List[str]] = None,
        disable_tools: Optional[List[str]] = None,
        group: Optional[str] = None,
        preset_parameters: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> List[str]:
        """
        Initialize a client and register its tools.

        Args:
            client: The remote client
            enable_tools: Only these tools (None means all)
            disable_tools: Never these tools
            group: Group to register the tools into
            preset_parameters: Tool name -> preset parameters for that tool

        Returns:
            Names of the tools registered

        Raises:
            GroupNotFoundError: If group is given and does not exist
        """
        if client is None:
            raise ValueError("Remote client must not be None")
        if group is not None:
            self._groups.validate_group_exists(group)

        self._logger.info(f"Registering remote client: {client.name}")
        try:
            await client.initialize()
            listed = await client.list_tools()
        except Exception as e:
            self._logger.error(f"Failed to register remote client {client.name}: {e}")
            raise

        presets = preset_parameters or {}
        registered = []
        for spec in listed:
            tool_name = spec["name"]
            if not should_register(tool_name, enable_tools, disable_tools):
                continue
            tool = RemoteTool(
                client=client,
                name=tool_name,
                description=spec.get("description") or "",
                parameters=spec.get("input_schema") or empty_schema(),
            )
            self._logger.debug(f"Registering remote tool {tool_name} from {client.name}")
            self._register_tool(
                tool,
                group=group,
                origin_client=client.name,
                preset_parameters=presets.get(tool_name),
            )
            registered.append(tool_name)

        with self._lock:
            self._clients[client.name] = client
        self._logger.info(f"Remote client '{client.name}' registered {len(registered)} tools")
        return registered

    async def remove_client(self, client_name: str) -> List[str]:
        """
        Remove a client and every tool it contributed.

        Unknown client names are a logged no-op.
        """
        with self._lock:
            client = self._clients.pop(client_name, None)
        if client is None:
            self._logger.warning(f"Remote client not found: {client_name}")
            return []

        names = self._registry.by_origin_client(client_name)
        for name in names:
            self._groups.remove_tool_everywhere(name)
        removed = self._registry.remove_all(names)
        self._logger.info(f"Removed remote client '{client_name}' and {len(removed)} tools")

        await client.close()
        return removed

    def client_names(self) -> List[str]:
        with self._lock:
            return list(self._clients)

    def get_client(self, client_name: str) -> Optional[RemoteClient]:
        return self._clients.get(client_name)

    def copy_to(self, other: "RemoteClientManager") -> None:
        with self._lock:
            snapshot = dict(self._clients)
        with other._lock:
            other._clients.update(snapshot)
