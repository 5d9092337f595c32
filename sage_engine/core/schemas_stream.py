"""Pydantic models for the streaming turn pipeline.

A turn flows through three shapes:

1. StreamEvent: typed events produced by the stream parser, in arrival order
2. ToolInvocation: one completed tool call collected from those events
3. ToolResult / LifecycleEvent: what dispatch hands back to the transport
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Stream events
# =============================================================================


class TokenUsage(BaseModel):
    """Token usage reported by the generative service for one turn."""

    input_tokens: int = 0
    output_tokens: int = 0


class TextDelta(BaseModel):
    """A piece of prose streamed by the service."""

    type: Literal["text_delta"] = "text_delta"
    text: str


class ToolStart(BaseModel):
    """A tool block was opened."""

    type: Literal["tool_start"] = "tool_start"
    id: str
    name: str


class ToolFragment(BaseModel):
    """A partial chunk of a tool block's JSON arguments."""

    type: Literal["tool_fragment"] = "tool_fragment"
    id: str
    partial_args_chunk: str


class ToolComplete(BaseModel):
    """A tool block closed and its arguments parsed."""

    type: Literal["tool_complete"] = "tool_complete"
    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class TurnEnd(BaseModel):
    """The service finished the turn."""

    type: Literal["turn_end"] = "turn_end"
    usage: TokenUsage = Field(default_factory=TokenUsage)
    stop_reason: str | None = None
    message_id: str = ""
    model: str = ""


StreamEvent = Annotated[
    Union[TextDelta, ToolStart, ToolFragment, ToolComplete, TurnEnd],
    Field(discriminator="type"),
]


# =============================================================================
# Tool invocations and results
# =============================================================================


class ToolInvocation(BaseModel):
    """A completed tool call. Immutable once collected."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_complete(cls, event: ToolComplete) -> ToolInvocation:
        return cls(id=event.id, name=event.name, input=event.args)

    def to_api_block(self) -> dict[str, Any]:
        """Render as an Anthropic ``tool_use`` content block."""
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


class HandlerResult(BaseModel):
    """Value returned by a tool handler.

    Handlers report expected validation problems by returning
    ``is_error=True`` rather than raising.
    """

    result: Any = None
    is_error: bool = False


def render_result_content(result: Any) -> str:
    """Serialize a handler result into tool_result text."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class ToolResult(BaseModel):
    """One result per invocation, sent back to the service next turn."""

    tool_invocation_id: str
    content: str
    is_error: bool = False

    def to_api_block(self) -> dict[str, Any]:
        """Render as an Anthropic ``tool_result`` content block."""
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_invocation_id,
            "content": self.content,
        }
        if self.is_error:
            block["is_error"] = True
        return block


LifecycleType = Literal["start", "end"]


class LifecycleEvent(BaseModel):
    """Start/end marker emitted for every dispatched invocation."""

    type: LifecycleType
    tool_invocation_id: str
    tool_name: str
    input: dict[str, Any] | None = None  # start only
    result: Any = None  # end only
    is_error: bool = False

    def to_payload(self, max_result_chars: int | None = None) -> dict[str, Any]:
        """Render for the outgoing transport feed.

        Args:
            max_result_chars: Truncate string results longer than this

        Returns:
            ``tool_start`` / ``tool_end`` payload dict
        """
        if self.type == "start":
            return {
                "type": "tool_start",
                "tool_use_id": self.tool_invocation_id,
                "tool_name": self.tool_name,
                "input": self.input or {},
            }

        result = self.result
        if max_result_chars is not None and isinstance(result, str) and len(result) > max_result_chars:
            result = result[:max_result_chars] + f"\n... (truncated, {len(self.result)} chars)"
        return {
            "type": "tool_end",
            "tool_use_id": self.tool_invocation_id,
            "tool_name": self.tool_name,
            "result": result,
            "is_error": self.is_error,
        }


class DispatchResult(BaseModel):
    """Everything one dispatch call produced, in input order."""

    tool_results: list[ToolResult] = Field(default_factory=list)
    events: list[LifecycleEvent] = Field(default_factory=list)
    cancelled: bool = False


# =============================================================================
# Side-channel notifications
# =============================================================================


class PanelEvent(BaseModel):
    """A notification staged by a handler for delivery after the turn."""

    type: str  # e.g. "panel:section", "panel:propagation_semantic"
    data: dict[str, Any] = Field(default_factory=dict)
