"""
Tool Registry
-------------
Thread-safe store of registered tools and their registration metadata.

Entries are replaced whole under a lock, so a concurrent reader sees
either the old entry or the new one, never a mix. Lookups never block.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional
import logging
import threading

from .schema import compose_schema, hide_properties
from .tool import Tool, ToolKind


@dataclass
class RegisteredTool:
    """
    A tool plus everything the toolkit attached to it at registration.

    The schema is composed once up front, so a conflicting extension
    fails the registration rather than the first call, and again on
    every read, since a tool's parameters may be computed live.
    """
    tool: Tool
    group: Optional[str] = None
    extension: Optional[Dict[str, Any]] = None
    origin_client: Optional[str] = None  # Remote client that supplied the tool
    preset_parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.preset_parameters = dict(self.preset_parameters or {})
        compose_schema(self.tool.parameters, self.extension, tool_name=self.tool.name)

    @property
    def composed_schema(self) -> Dict[str, Any]:
        return compose_schema(self.tool.parameters, self.extension, tool_name=self.tool.name)

    @property
    def name(self) -> str:
        return self.tool.name

    @property
    def kind(self) -> ToolKind:
        return self.tool.kind

    @property
    def advertised_schema(self) -> Dict[str, Any]:
        """Composed schema with preset parameters hidden from the model."""
        return hide_properties(self.composed_schema, self.preset_parameters)

    def merge_input(self, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Presets first, caller-supplied values on top."""
        merged = dict(self.preset_parameters)
        merged.update(payload or {})
        return merged

    def with_presets(self, preset_parameters: Dict[str, Any]) -> "RegisteredTool":
        return replace(self, preset_parameters=dict(preset_parameters or {}))

    def __repr__(self) -> str:
        group = f", group={self.group}" if self.group else ""
        return f"RegisteredTool(name={self.name}, kind={self.kind.name}{group})"


class ToolRegistry:
    """
    Registry for all registered tools.

    Owned by one Toolkit; there is no module-level instance.
    """

    def __init__(self):
        self._tools: Dict[str, RegisteredTool] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger("toolbelt.tools.registry")

    def register(self, entry: RegisteredTool) -> None:
        """Insert or replace the entry under its tool's name."""
        with self._lock:
            if entry.name in self._tools:
                self._logger.warning(f"Overwriting existing tool: {entry.name}")
            self._tools[entry.name] = entry
        self._logger.info(f"Registered tool: {entry.name} ({entry.kind.name.lower()})")

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        entry = self._tools.get(name)
        return entry.tool if entry else None

    def get_registered(self, name: str) -> Optional[RegisteredTool]:
        """Get a tool with its registration metadata."""
        return self._tools.get(name)

    def remove(self, name: str) -> bool:
        """Remove a tool. Removing an unknown name is a no-op."""
        with self._lock:
            removed = self._tools.pop(name, None) is not None
        if removed:
            self._logger.info(f"Removed tool: {name}")
        return removed

    def remove_all(self, names: Iterable[str]) -> List[str]:
        """Remove several tools, returning the names actually removed."""
        removed = []
        with self._lock:
            for name in names:
                if self._tools.pop(name, None) is not None:
                    removed.append(name)
        if removed:
            self._logger.info(f"Removed tools: {', '.join(removed)}")
        return removed

    def update_preset_parameters(self, name: str, preset_parameters: Dict[str, Any]) -> bool:
        """Swap the presets of one entry. False if the name is unknown."""
        with self._lock:
            entry = self._tools.get(name)
            if entry is None:
                return False
            self._tools[name] = entry.with_presets(preset_parameters)
        self._logger.info(f"Updated preset parameters for {name}: {sorted(preset_parameters)}")
        return True

    def names(self) -> List[str]:
        """Tool names in registration order."""
        with self._lock:
            return list(self._tools)

    def entries(self) -> List[RegisteredTool]:
        with self._lock:
            return list(self._tools.values())

    def by_origin_client(self, client_name: str) -> List[str]:
        """Names of tools registered from a remote client."""
        with self._lock:
            return [n for n, e in self._tools.items() if e.origin_client == client_name]

    def copy_to(self, other: "ToolRegistry") -> None:
        """Register every entry of this registry into other."""
        for entry in self.entries():
            other.register(replace(entry))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
