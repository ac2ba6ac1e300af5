"""
Meta Tool
---------
reset_equipped_tools lets the model choose its own tool groups.

The tool is never grouped, so it stays callable whatever is active. Its
description and schema are computed from the group manager on every
read, so newly created groups show up without re-registration.
"""

from typing import Any, Dict
import logging

from .context import ExecutionContext
from .groups import ToolGroupManager
from .tool import ToolKind

META_TOOL_NAME = "reset_equipped_tools"


class ResetEquippedTools:
    """Activates exactly the requested groups and deactivates the rest."""

    name = META_TOOL_NAME
    kind = ToolKind.LOCAL

    def __init__(self, groups: ToolGroupManager):
        self._groups = groups
        self._logger = logging.getLogger("toolbelt.tools.meta")

    @property
    def description(self) -> str:
        return (
            "Reset the equipped tools by choosing which tool groups to activate. "
            "Groups not listed are deactivated.\n\n"
            f"{self._groups.activated_notes()}"
        )

    @property
    def parameters(self) -> Dict[str, Any]:
        items: Dict[str, Any] = {"type": "string"}
        names = self._groups.group_names()
        if names:
            items["enum"] = names
        return {
            "type": "object",
            "properties": {
                "to_activate": {
                    "type": "array",
                    "description": "Names of the tool groups to activate",
                    "items": items,
                }
            },
            "required": ["to_activate"],
        }

    async def call(self, args: Dict[str, Any], context: ExecutionContext) -> str:
        requested = list(args.get("to_activate") or [])
        activated = self._groups.set_active_groups(requested)
        self._logger.info(f"Model reset equipped tool groups to: {activated}")
        return self._groups.activated_notes()

    def __repr__(self) -> str:
        return f"ResetEquippedTools(groups={len(self._groups)})"
