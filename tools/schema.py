"""
Tool Schemas
------------
Building, composing and trimming JSON-schema-like parameter descriptors.

Schemas are plain dicts: {"type": "object", "properties": {...},
"required": [...]}. ToolParameter / ToolSchema are a typed way to build
them; compose_schema() merges a base schema with an extension;
hide_properties() removes preset parameters from an advertised schema.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from core.errors import SchemaConflictError


class ParameterType(str, Enum):
    """Supported parameter types."""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: ParameterType
    description: str = ""
    required: bool = True
    default: Optional[Any] = None
    enum: Optional[List[Any]] = None  # Allowed values
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None  # Regex for strings
    items: Optional[Dict[str, Any]] = None  # Item schema for arrays
    properties: Optional[List["ToolParameter"]] = None  # Nested object fields

    def to_json_schema(self) -> Dict[str, Any]:
        """Convert to JSON Schema format."""
        schema: Dict[str, Any] = {"type": self.type.value}

        if self.description:
            schema["description"] = self.description
        if self.enum:
            schema["enum"] = self.enum
        if self.min_value is not None:
            schema["minimum"] = self.min_value
        if self.max_value is not None:
            schema["maximum"] = self.max_value
        if self.min_length is not None:
            schema["minLength"] = self.min_length
        if self.max_length is not None:
            schema["maxLength"] = self.max_length
        if self.pattern:
            schema["pattern"] = self.pattern
        if self.default is not None:
            schema["default"] = self.default
        if self.items is not None:
            schema["items"] = self.items
        if self.properties is not None:
            nested = ToolSchema(parameters=self.properties).to_json_schema()
            schema["properties"] = nested["properties"]
            schema["required"] = nested["required"]

        return schema


@dataclass
class ToolSchema:
    """Typed builder for an object parameter schema."""
    parameters: List[ToolParameter] = field(default_factory=list)

    def to_json_schema(self) -> Dict[str, Any]:
        """Convert to full JSON Schema."""
        properties = {}
        required = []

        for param in self.parameters:
            properties[param.name] = param.to_json_schema()
            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }


def empty_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


def compose_schema(
    base: Optional[Dict[str, Any]],
    extension: Optional[Dict[str, Any]],
    tool_name: Optional[str] = None
) -> Dict[str, Any]:
    """
    Merge an extension's properties and required names onto a base schema.

    Every other field of the base passes through unchanged. Neither input
    is mutated.

    Raises:
        SchemaConflictError: If any property name appears in both, listing
            every such name
    """
    composed = deepcopy(base) if base else empty_schema()
    if not extension:
        return composed

    base_properties = composed.get("properties") or {}
    extra_properties = extension.get("properties") or {}

    conflicts = [name for name in base_properties if name in extra_properties]
    if conflicts:
        raise SchemaConflictError(conflicts, tool_name=tool_name)

    properties = dict(base_properties)
    properties.update(deepcopy(extra_properties))
    composed["properties"] = properties

    required = list(composed.get("required") or [])
    for name in extension.get("required") or []:
        if name not in required:
            required.append(name)
    composed["required"] = required

    return composed


def hide_properties(schema: Dict[str, Any], names: Iterable[str]) -> Dict[str, Any]:
    """Copy of schema without the given top-level properties."""
    hidden = set(names)
    trimmed = deepcopy(schema)
    if not hidden:
        return trimmed

    properties = trimmed.get("properties")
    if isinstance(properties, dict):
        trimmed["properties"] = {k: v for k, v in properties.items() if k not in hidden}
    if "required" in trimmed:
        trimmed["required"] = [r for r in trimmed.get("required") or [] if r not in hidden]
    return trimmed
