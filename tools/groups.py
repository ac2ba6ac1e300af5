"""
Tool Group Manager
------------------
Named, activatable groups of tool names and the authorization rule.

Rules:
- A tool in no group is always callable
- A grouped tool is callable if AT LEAST ONE of its groups is active
- Deactivating a group blocks its tools immediately, even mid-session
- Activation changes on unknown groups raise; membership changes on
  unknown groups are logged no-ops
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set
import logging
import threading

from core.errors import GroupExistsError, GroupNotFoundError


@dataclass
class ToolGroup:
    """A named collection of tool names with an active flag."""
    name: str
    description: str = ""
    active: bool = True
    tools: Set[str] = field(default_factory=set)

    def copy(self) -> "ToolGroup":
        return ToolGroup(self.name, self.description, self.active, set(self.tools))


class ToolGroupManager:
    """
    Central authority for group-based tool authorization.

    Every activation change and every denied check is logged.
    """

    def __init__(self):
        self._groups: Dict[str, ToolGroup] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger("toolbelt.tools.groups")

    # =========================================================================
    # Group lifecycle
    # =========================================================================

    def create_group(self, name: str, description: str = "", active: bool = True) -> ToolGroup:
        """
        Create a new group.

        Raises:
            GroupExistsError: If the name is taken
        """
        with self._lock:
            if name in self._groups:
                raise GroupExistsError(name)
            group = ToolGroup(name=name, description=description, active=active)
            self._groups[name] = group
        self._logger.info(f"Created tool group: {name} (active={active})")
        return group

    def remove_groups(self, names: Iterable[str]) -> Set[str]:
        """
        Delete groups and return the union of their member tool names.

        Unknown names are skipped.
        """
        removed_tools: Set[str] = set()
        with self._lock:
            for name in names:
                group = self._groups.pop(name, None)
                if group is None:
                    continue
                removed_tools |= group.tools
                self._logger.info(f"Removed tool group: {name} ({len(group.tools)} tools)")
        return removed_tools

    def validate_group_exists(self, name: str) -> None:
        """Raises GroupNotFoundError if there is no such group."""
        if name not in self._groups:
            raise GroupNotFoundError(name)

    # =========================================================================
    # Membership
    # =========================================================================

    def add_to_group(self, group_name: str, tool_name: str, strict: bool = False) -> bool:
        """
        Add a tool to a group.

        An unknown group is a logged no-op, or raises GroupNotFoundError
        when strict is set.
        """
        with self._lock:
            group = self._groups.get(group_name)
            if group is None:
                if strict:
                    raise GroupNotFoundError(group_name)
                self._logger.warning(
                    f"Cannot add {tool_name} to unknown tool group: {group_name}"
                )
                return False
            group.tools.add(tool_name)
        self._logger.debug(f"Added {tool_name} to tool group {group_name}")
        return True

    def remove_from_group(self, group_name: str, tool_name: str) -> bool:
        """Remove a tool from a group. Unknown group is a logged no-op."""
        with self._lock:
            group = self._groups.get(group_name)
            if group is None:
                self._logger.warning(
                    f"Cannot remove {tool_name} from unknown tool group: {group_name}"
                )
                return False
            group.tools.discard(tool_name)
        return True

    def remove_tool_everywhere(self, tool_name: str) -> None:
        """Drop a tool name from every group it belongs to."""
        with self._lock:
            for group in self._groups.values():
                group.tools.discard(tool_name)

    # =========================================================================
    # Activation
    # =========================================================================

    def update_groups(self, names: Iterable[str], active: bool) -> None:
        """
        Set the active flag on every named group.

        All-or-nothing: if any name is unknown nothing changes.

        Raises:
            GroupNotFoundError: Listing every unknown name
        """
        names = list(names)
        with self._lock:
            missing = [n for n in names if n not in self._groups]
            if missing:
                raise GroupNotFoundError(missing)
            for name in names:
                self._groups[name].active = active
        if names:
            state = "Activated" if active else "Deactivated"
            self._logger.info(f"{state} tool groups: {', '.join(names)}")

    def set_active_groups(self, names: Iterable[str]) -> List[str]:
        """
        Make exactly the named groups active and all others inactive.

        Unknown names are logged and skipped. Returns the names activated.
        """
        wanted = list(dict.fromkeys(names))
        with self._lock:
            for name in wanted:
                if name not in self._groups:
                    self._logger.warning(f"Skipping unknown tool group: {name}")
            for name, group in self._groups.items():
                group.active = name in wanted
            activated = [n for n in wanted if n in self._groups]
        self._logger.info(f"Active tool groups set to: {activated}")
        return activated

    # =========================================================================
    # Authorization
    # =========================================================================

    def is_callable(self, tool_name: str) -> bool:
        """
        Check if a tool may be called right now.

        Ungrouped tools are always callable; grouped tools need at least
        one active owning group.
        """
        with self._lock:
            owners = [g for g in self._groups.values() if tool_name in g.tools]
            if not owners:
                return True
            allowed = any(g.active for g in owners)

        if not allowed:
            self._logger.debug(
                f"Authorization check: DENIED | tool={tool_name} | "
                f"groups={sorted(g.name for g in owners)} | reason=all groups inactive"
            )
        return allowed

    def is_active_group(self, name: str) -> bool:
        group = self._groups.get(name)
        return group is not None and group.active

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_group(self, name: str) -> Optional[ToolGroup]:
        """Snapshot of a group, or None."""
        with self._lock:
            group = self._groups.get(name)
            return group.copy() if group else None

    def group_names(self) -> List[str]:
        with self._lock:
            return list(self._groups)

    def active_groups(self) -> List[str]:
        with self._lock:
            return [name for name, g in self._groups.items() if g.active]

    def groups_of(self, tool_name: str) -> List[str]:
        with self._lock:
            return [name for name, g in self._groups.items() if tool_name in g.tools]

    def activated_notes(self) -> str:
        """Prompt-ready summary of which groups are active."""
        with self._lock:
            if not self._groups:
                return "No tool groups have been created."
            active = [g for g in self._groups.values() if g.active]
            if not active:
                return "No tool groups are currently activated."
            lines = ["Activated tool groups:"]
            for group in active:
                description = f": {group.description}" if group.description else ""
                lines.append(f"- {group.name}{description}")
        return "\n".join(lines)

    def copy_to(self, other: "ToolGroupManager") -> None:
        """Copy every group, with its members and active flag, into other."""
        with self._lock:
            snapshot = [g.copy() for g in self._groups.values()]
        with other._lock:
            for group in snapshot:
                other._groups[group.name] = group

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return name in self._groups
