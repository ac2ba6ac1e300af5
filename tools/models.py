"""
Tool Call Models
----------------
Request and result shapes exchanged with the host.

A batch of N ToolCalls always yields N ToolResults with the same call ids.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import json

from pydantic import BaseModel, Field, computed_field

from core.errors import ERROR_PREFIX, ToolError


class TextSegment(BaseModel):
    """Plain text output."""
    type: Literal["text"] = "text"
    text: str


class DataSegment(BaseModel):
    """Structured or binary output the host renders itself."""
    type: Literal["data"] = "data"
    data: Any
    mime_type: Optional[str] = None


Segment = Annotated[Union[TextSegment, DataSegment], Field(discriminator="type")]


class ToolCall(BaseModel):
    """One invocation request inside a batch."""
    call_id: str = Field(..., description="Caller-supplied id, unique within one batch")
    name: str = Field(..., description="Name of the tool to invoke")
    input: Optional[Dict[str, Any]] = Field(None, description="Raw, unvalidated payload")


class ToolResult(BaseModel):
    """Normalized outcome of one ToolCall."""
    call_id: str
    name: str
    output: List[Segment] = Field(default_factory=list)

    @computed_field
    @property
    def is_error(self) -> bool:
        """Derived from the fixed error prefix on the first segment."""
        if not self.output:
            return False
        first = self.output[0]
        return isinstance(first, TextSegment) and first.text.startswith(ERROR_PREFIX)

    @property
    def text(self) -> str:
        """All text segments joined by newlines."""
        return "\n".join(s.text for s in self.output if isinstance(s, TextSegment))

    @classmethod
    def error(cls, call_id: str, name: str, error: ToolError) -> "ToolResult":
        return cls(call_id=call_id, name=name, output=[TextSegment(text=error.text)])

    @classmethod
    def from_output(cls, call_id: str, name: str, value: Any) -> "ToolResult":
        return cls(call_id=call_id, name=name, output=to_segments(value))


def _is_segment(value: Any) -> bool:
    return isinstance(value, (TextSegment, DataSegment))


def to_segments(value: Any) -> List[Union[TextSegment, DataSegment]]:
    """
    Convert a tool's return value into output segments.

    str -> one text segment; segments pass through; None -> no segments;
    anything else is serialized as JSON text.
    """
    if value is None:
        return []
    if isinstance(value, ToolResult):
        return list(value.output)
    if _is_segment(value):
        return [value]
    if isinstance(value, str):
        return [TextSegment(text=value)]
    if isinstance(value, (list, tuple)) and value and all(_is_segment(v) for v in value):
        return list(value)
    if isinstance(value, BaseModel):
        return [TextSegment(text=value.model_dump_json())]
    return [TextSegment(text=json.dumps(value, default=str, ensure_ascii=False))]
