"""
Toolkit
-------
The host-facing facade over registry, groups, context and executor.

Usage:
    toolkit = Toolkit(ToolkitConfig(parallel=True))
    toolkit.create_group("search", "Web search tools", active=False)
    toolkit.register(FunctionTool("web_search", "Search the web", handler), group="search")
    toolkit.update_groups(["search"], active=True)

    results = await toolkit.call_tools([
        ToolCall(call_id="1", name="web_search", input={"query": "python"}),
    ])

Configuration errors raise ToolkitError subclasses at the call that caused
them. Everything that goes wrong inside a call comes back as an error
result instead.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union
import logging

import yaml

from core.errors import GroupNotFoundError, ToolkitError, ToolNotFoundError
from core.state_machine import TransitionListener
from infra.config import ExecutionConfig, ToolkitConfig, load_config

from .context import ExecutionContext
from .executor import ToolExecutor
from .groups import ToolGroup, ToolGroupManager
from .meta import META_TOOL_NAME, ResetEquippedTools
from .models import ToolCall, ToolResult
from .registry import RegisteredTool, ToolRegistry
from .remote import RemoteClient, RemoteClientManager
from .tool import SchemaOnlyTool, Tool, ToolKind

CallLike = Union[ToolCall, Dict[str, Any]]


class Toolkit:
    """
    One explicitly constructed, self-contained tool runtime.

    Context priority at call time:
        call context > session context > default_context
    """

    def __init__(
        self,
        config: Optional[ToolkitConfig] = None,
        default_context: Optional[ExecutionContext] = None
    ):
        self.config = config or ToolkitConfig()
        self.default_context = default_context or ExecutionContext.empty()
        self.registry = ToolRegistry()
        self.groups = ToolGroupManager()
        self._listeners: List[TransitionListener] = []
        self.executor = ToolExecutor(
            self.registry, self.groups, self.config, listeners=self._listeners
        )
        self.remote = RemoteClientManager(self.registry, self.groups, self.register)
        self._logger = logging.getLogger("toolbelt.tools.toolkit")

    @classmethod
    def from_config_file(
        cls,
        path: Optional[Union[str, Path]] = None,
        default_context: Optional[ExecutionContext] = None
    ) -> "Toolkit":
        return cls(load_config(path), default_context)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(
        self,
        tool: Tool,
        group: Optional[str] = None,
        extension: Optional[Dict[str, Any]] = None,
        origin_client: Optional[str] = None,
        preset_parameters: Optional[Dict[str, Any]] = None
    ) -> RegisteredTool:
        """
        Register (or overwrite) a tool.

        Overwriting keeps the groups the tool already belongs to, so
        registering the same tool under several groups makes it a member
        of each.

        Raises:
            GroupNotFoundError: If group is given and does not exist
            SchemaConflictError: If extension redeclares base properties
        """
        if group is not None:
            self.groups.validate_group_exists(group)

        entry = RegisteredTool(
            tool=tool,
            group=group,
            extension=extension,
            origin_client=origin_client,
            preset_parameters=preset_parameters or {},
        )

        previous = self.registry.get_registered(tool.name)
        self.registry.register(entry)
        if group is None:
            return entry

        try:
            self.groups.add_to_group(group, tool.name, strict=True)
        except GroupNotFoundError:
            # Group removed while registering; undo so the tool is not left ungated
            if previous is not None:
                self.registry.register(previous)
            else:
                self.registry.remove(tool.name)
            raise
        return entry

    def register_meta_tool(self) -> RegisteredTool:
        """Add the ungrouped reset_equipped_tools tool."""
        entry = self.register(ResetEquippedTools(self.groups))
        self._logger.info(f"Registered meta tool: {META_TOOL_NAME}")
        return entry

    def remove_tool(self, name: str) -> bool:
        """Remove a tool from the registry and from every group."""
        if not self.config.allow_tool_deletion:
            self._logger.warning(f"Tool deletion is disabled; not removing {name}")
            return False
        self.groups.remove_tool_everywhere(name)
        return self.registry.remove(name)

    def update_preset_parameters(self, name: str, preset_parameters: Optional[Dict[str, Any]]) -> None:
        """
        Replace a tool's preset parameters at runtime.

        Raises:
            ToolNotFoundError: If no tool has this name
        """
        if not self.registry.update_preset_parameters(name, preset_parameters or {}):
            raise ToolNotFoundError(name)

    # =========================================================================
    # Groups
    # =========================================================================

    def create_group(self, name: str, description: str = "", active: bool = True) -> ToolGroup:
        """Raises GroupExistsError if the name is taken."""
        return self.groups.create_group(name, description, active)

    def add_to_group(self, group_name: str, tool_name: str) -> bool:
        return self.groups.add_to_group(group_name, tool_name)

    def remove_from_group(self, group_name: str, tool_name: str) -> bool:
        return self.groups.remove_from_group(group_name, tool_name)

    def update_groups(self, names: Iterable[str], active: bool) -> None:
        """
        Activate or deactivate groups.

        Raises:
            GroupNotFoundError: If any name is unknown
        """
        names = list(names)
        if not active and not self.config.allow_tool_deletion:
            self._logger.warning(f"Tool deletion is disabled; not deactivating {names}")
            return
        self.groups.update_groups(names, active)

    def set_active_groups(self, names: Iterable[str]) -> List[str]:
        """Make exactly these groups active; unknown names are skipped."""
        return self.groups.set_active_groups(names)

    def remove_groups(self, names: Iterable[str]) -> Set[str]:
        """Delete groups and every tool they contained."""
        names = list(names)
        if not self.config.allow_tool_deletion:
            self._logger.warning(f"Tool deletion is disabled; not removing groups {names}")
            return set()

        removed = self.groups.remove_groups(names)
        for tool_name in removed:
            self.groups.remove_tool_everywhere(tool_name)
        self.registry.remove_all(removed)
        return removed

    # =========================================================================
    # Introspection
    # =========================================================================

    def tool_names(self) -> List[str]:
        return self.registry.names()

    def get_tool(self, name: str) -> Optional[Tool]:
        return self.registry.get(name)

    def get_registered(self, name: str) -> Optional[RegisteredTool]:
        return self.registry.get_registered(name)

    def get_group(self, name: str) -> Optional[ToolGroup]:
        return self.groups.get_group(name)

    def active_groups(self) -> List[str]:
        return self.groups.active_groups()

    def activated_notes(self) -> str:
        return self.groups.activated_notes()

    def get_composed_schema(self, name: str) -> Optional[Dict[str, Any]]:
        """Base parameters plus extension for a tool, or None if unknown."""
        entry = self.registry.get_registered(name)
        return entry.composed_schema if entry else None

    def is_external_tool(self, name: str) -> bool:
        """True for declared-only tools the host must execute itself."""
        tool = self.registry.get(name)
        return tool is not None and tool.kind == ToolKind.EXTERNAL

    def tool_schemas(self) -> List[Dict[str, Any]]:
        """
        Schemas to advertise to the model.

        Only currently callable tools are listed, and preset parameters
        are hidden since the model never supplies them.
        """
        schemas = []
        for entry in self.registry.entries():
            if not self.groups.is_callable(entry.name):
                continue
            schemas.append({
                "name": entry.name,
                "description": entry.tool.description,
                "parameters": entry.advertised_schema,
            })
        return schemas

    def add_listener(self, listener: TransitionListener) -> None:
        """Observe every invocation state transition."""
        self.executor.add_listener(listener)

    # =========================================================================
    # Invocation
    # =========================================================================

    async def call_tools(
        self,
        calls: Iterable[CallLike],
        context: Optional[ExecutionContext] = None,
        session_context: Optional[ExecutionContext] = None,
        parallel: Optional[bool] = None,
        execution: Optional[ExecutionConfig] = None
    ) -> List[ToolResult]:
        """
        Execute a batch of calls, one result per call, in input order.

        Raises:
            DuplicateCallError: If two calls share a call id
        """
        requests = [c if isinstance(c, ToolCall) else ToolCall.model_validate(c) for c in calls]
        merged = ExecutionContext.merge(context, session_context, self.default_context)
        return await self.executor.execute_all(requests, merged, parallel=parallel, execution=execution)

    async def call_tool(
        self,
        call: CallLike,
        context: Optional[ExecutionContext] = None,
        session_context: Optional[ExecutionContext] = None,
        execution: Optional[ExecutionConfig] = None
    ) -> ToolResult:
        results = await self.call_tools(
            [call], context, session_context, parallel=False, execution=execution
        )
        return results[0]

    # =========================================================================
    # Remote clients
    # =========================================================================

    async def register_client(
        self,
        client: RemoteClient,
        enable_tools: Optional[List[str]] = None,
        disable_tools: Optional[List[str]] = None,
        group: Optional[str] = None,
        preset_parameters: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> List[str]:
        return await self.remote.register_client(
            client, enable_tools, disable_tools, group, preset_parameters
        )

    async def remove_client(self, client_name: str) -> List[str]:
        return await self.remote.remove_client(client_name)

    # =========================================================================
    # Declarations and copies
    # =========================================================================

    def load_declarations(self, path: Union[str, Path]) -> int:
        """
        Load groups and external tool declarations from YAML.

        Format:
            groups:
              - {name: browser, description: "...", active: false}
            tools:
              - {name: click, description: "...", group: browser,
                 parameters: {type: object, properties: {...}, required: [...]}}

        Entries that fail are logged and skipped.
        Returns number of tools registered.
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        for group_data in data.get("groups") or []:
            try:
                self.create_group(
                    group_data["name"],
                    group_data.get("description", ""),
                    group_data.get("active", True),
                )
            except (ToolkitError, KeyError) as e:
                self._logger.error(f"Failed to load tool group: {e}")

        count = 0
        for tool_data in data.get("tools") or []:
            try:
                tool = SchemaOnlyTool(
                    name=tool_data["name"],
                    description=tool_data.get("description", ""),
                    parameters=tool_data.get("parameters"),
                )
                self.register(
                    tool,
                    group=tool_data.get("group"),
                    extension=tool_data.get("extension"),
                    preset_parameters=tool_data.get("preset_parameters"),
                )
                count += 1
            except (ToolkitError, KeyError, ValueError) as e:
                self._logger.error(f"Failed to load tool declaration: {e}")

        self._logger.info(f"Loaded {count} tool declarations from {path}")
        return count

    def copy(self) -> "Toolkit":
        """Independent toolkit with the same tools, metadata and group states."""
        clone = Toolkit(self.config, self.default_context)
        self.registry.copy_to(clone.registry)
        self.groups.copy_to(clone.groups)
        self.remote.copy_to(clone.remote)
        for listener in self._listeners:
            clone.add_listener(listener)

        # The meta tool must drive the clone's groups, not ours
        if isinstance(self.registry.get(META_TOOL_NAME), ResetEquippedTools):
            clone.register_meta_tool()
        return clone

    def close(self) -> None:
        self.executor.shutdown()

    def __len__(self) -> int:
        return len(self.registry)

    def __contains__(self, name: str) -> bool:
        return name in self.registry

    def __repr__(self) -> str:
        return f"Toolkit(tools={len(self.registry)}, groups={len(self.groups)})"
