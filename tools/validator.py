"""
Payload Validator
-----------------
Minimal JSON-schema validation for tool inputs.

Supported keywords:
    type, properties, required, items, enum,
    minimum, maximum, minLength, maxLength, pattern

validate_input() returns None when the payload is valid and a
human-readable message otherwise. The message ends up in front of the
user, so it names the offending field and what was expected.
"""

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Pattern
import re

ROOT = "input"


def _type_name(value: Any) -> str:
    """JSON type name of a Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, Mapping)
    if expected == "array":
        return isinstance(value, (list, tuple))
    if expected == "null":
        return value is None
    # Unknown type names are not enforced
    return True


def _in_enum(value: Any, allowed: List[Any]) -> bool:
    """Exact membership: True does not match 1, 1 does not match True."""
    for candidate in allowed:
        if isinstance(candidate, bool) != isinstance(value, bool):
            continue
        if candidate == value:
            return True
    return False


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _child(path: str, name: str) -> str:
    return name if path == ROOT else f"{path}.{name}"


def _constraint(schema: Mapping, key: str, kind: Any) -> Optional[Any]:
    """A keyword's value, or None when absent or of the wrong kind."""
    value = schema.get(key)
    if isinstance(value, bool) or not isinstance(value, kind):
        return None
    return value


def _validate(value: Any, schema: Dict[str, Any], path: str) -> Optional[str]:
    """Check one value against one schema node, depth first."""
    if not isinstance(schema, Mapping) or not schema:
        return None

    expected = schema.get("type")
    if expected is not None:
        options = expected if isinstance(expected, list) else [expected]
        if not any(_matches_type(value, t) for t in options):
            wanted = " or ".join(str(t) for t in options)
            return f"Invalid type for {path}: expected {wanted}, got {_type_name(value)}"

    allowed = _constraint(schema, "enum", (list, tuple))
    if allowed is not None and not _in_enum(value, list(allowed)):
        return f"Invalid value for {path}: must be one of {list(allowed)}"

    if _is_number(value):
        minimum = _constraint(schema, "minimum", (int, float))
        maximum = _constraint(schema, "maximum", (int, float))
        if minimum is not None and value < minimum:
            return f"{path} must be >= {minimum}, got {value}"
        if maximum is not None and value > maximum:
            return f"{path} must be <= {maximum}, got {value}"

    if isinstance(value, str):
        min_length = _constraint(schema, "minLength", int)
        max_length = _constraint(schema, "maxLength", int)
        pattern = _constraint(schema, "pattern", str)
        if min_length is not None and len(value) < min_length:
            return f"{path} must be at least {min_length} characters, got {len(value)}"
        if max_length is not None and len(value) > max_length:
            return f"{path} must be at most {max_length} characters, got {len(value)}"
        if pattern:
            try:
                compiled = _compile(pattern)
            except re.error as e:
                return f"Invalid pattern for {path}: {e}"
            if compiled.search(value) is None:
                return f"{path} does not match pattern {pattern!r}"

    if isinstance(value, Mapping):
        for name in _constraint(schema, "required", (list, tuple)) or []:
            if name not in value:
                return f"Missing required parameter: {_child(path, name)}"
        properties = _constraint(schema, "properties", Mapping) or {}
        for name, sub_schema in properties.items():
            if name in value and isinstance(sub_schema, Mapping):
                error = _validate(value[name], sub_schema, _child(path, name))
                if error:
                    return error

    if isinstance(value, (list, tuple)):
        item_schema = schema.get("items")
        if isinstance(item_schema, Mapping):
            for index, item in enumerate(value):
                error = _validate(item, item_schema, f"{path}[{index}]")
                if error:
                    return error

    return None


def validate_input(payload: Optional[Any], schema: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Validate a raw payload against a parameter schema.

    Returns:
        None if valid, else a description of the first problem found.
        An absent or empty schema accepts anything; a missing payload
        is rejected by any non-empty schema.
    """
    if not schema:
        return None
    if payload is None:
        required = schema.get("required") or []
        if required:
            return f"Tool input is missing; required parameters: {', '.join(required)}"
        return "Tool input is missing"
    return _validate(payload, schema, ROOT)
