"""Stream parser for Anthropic Messages streaming events.

Turns the raw frame feed of one turn into an ordered sequence of typed
StreamEvents:

- ``text_delta`` frames become TextDelta events as they arrive
- a ``tool_use`` block becomes ToolStart, then one ToolFragment per
  ``input_json_delta``, then ToolComplete once the block closes and its
  argument buffer parses
- ``message_stop`` becomes TurnEnd carrying the accumulated token usage

Argument fragments are buffered per tool id and parsed only when that
block's close frame arrives. If the feed ends (or the upstream raises)
before the turn terminates, IncompleteTurnError is raised; no partial tool
call is ever emitted as complete.

Frames may be Anthropic SDK event objects or plain dicts with the same
shape. The SDK's ``messages.stream()`` helper also interleaves derived
events (``text``, ``input_json``...); those types are ignored so nothing is
emitted twice.
"""

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from sage_engine.core.errors import IncompleteTurnError
from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_stream import (
    StreamEvent,
    TextDelta,
    TokenUsage,
    ToolComplete,
    ToolFragment,
    ToolInvocation,
    ToolStart,
    TurnEnd,
)

logger = get_logger(__name__)


class ParserState(str, Enum):
    IDLE = "idle"
    IN_TEXT_BLOCK = "in_text_block"
    IN_TOOL_BLOCK = "in_tool_block"
    ACCUMULATING_FRAGMENTS = "accumulating_fragments"
    TURN_ENDED = "turn_ended"


@dataclass
class _ToolBlock:
    id: str
    name: str
    fragments: list[str] = field(default_factory=list)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from an SDK event object or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _parse_arguments(tool_id: str, raw: str) -> dict[str, Any]:
    """Parse a closed tool block's accumulated argument text."""
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed tool arguments for {tool_id}: {e}")
        return {"_raw": raw}
    if not isinstance(parsed, dict):
        logger.warning(f"Tool arguments for {tool_id} are not an object: {type(parsed).__name__}")
        return {"_raw": raw}
    return parsed


class StreamParser:
    """Incremental frame → StreamEvent state machine for a single turn."""

    def __init__(self) -> None:
        self.state = ParserState.IDLE
        self.message_id = ""
        self.model = ""
        self.usage = TokenUsage()
        self.stop_reason: str | None = None
        self._text_parts: list[str] = []
        # Content block index -> open tool id ("" for an open text block)
        self._open_blocks: dict[int, str] = {}
        # Tool id -> accumulated block
        self._tool_blocks: dict[str, _ToolBlock] = {}

    @property
    def finished(self) -> bool:
        return self.state == ParserState.TURN_ENDED

    @property
    def partial_text(self) -> str:
        return "".join(self._text_parts)

    def open_tool_ids(self) -> list[str]:
        return list(self._tool_blocks)

    def feed(self, frame: Any) -> list[StreamEvent]:
        """Consume one frame and return the events it completes."""
        if self.finished:
            return []

        frame_type = _get(frame, "type")
        if frame_type == "message_start":
            return self._on_message_start(frame)
        if frame_type == "content_block_start":
            return self._on_block_start(frame)
        if frame_type == "content_block_delta":
            return self._on_block_delta(frame)
        if frame_type == "content_block_stop":
            return self._on_block_stop(frame)
        if frame_type == "message_delta":
            return self._on_message_delta(frame)
        if frame_type == "message_stop":
            return self._on_message_stop()
        return []

    # -------------------------------------------------------------------------
    # Frame handlers
    # -------------------------------------------------------------------------

    def _on_message_start(self, frame: Any) -> list[StreamEvent]:
        message = _get(frame, "message")
        self.message_id = _get(message, "id", "") or ""
        self.model = _get(message, "model", "") or ""
        usage = _get(message, "usage")
        self.usage.input_tokens = _get(usage, "input_tokens", 0) or 0
        self.usage.output_tokens = _get(usage, "output_tokens", 0) or 0
        return []

    def _on_block_start(self, frame: Any) -> list[StreamEvent]:
        index = _get(frame, "index", 0)
        block = _get(frame, "content_block")
        block_type = _get(block, "type")

        if block_type == "text":
            self._open_blocks[index] = ""
            self.state = ParserState.IN_TEXT_BLOCK
            initial = _get(block, "text", "") or ""
            if initial:
                self._text_parts.append(initial)
                return [TextDelta(text=initial)]
            return []

        if block_type == "tool_use":
            tool_id = _get(block, "id", "")
            name = _get(block, "name", "")
            if tool_id in self._tool_blocks:
                # Two open blocks cannot share one argument buffer
                raise IncompleteTurnError(
                    f"Tool block {tool_id} reopened before it closed",
                    open_tool_ids=self.open_tool_ids(),
                    partial_text=self.partial_text,
                )
            self._open_blocks[index] = tool_id
            self._tool_blocks[tool_id] = _ToolBlock(id=tool_id, name=name)
            self.state = ParserState.IN_TOOL_BLOCK
            return [ToolStart(id=tool_id, name=name)]

        # thinking / server tool blocks carry nothing this pipeline uses
        return []

    def _on_block_delta(self, frame: Any) -> list[StreamEvent]:
        index = _get(frame, "index", 0)
        if index not in self._open_blocks:
            return []

        delta = _get(frame, "delta")
        delta_type = _get(delta, "type")
        tool_id = self._open_blocks[index]

        if delta_type == "text_delta" and not tool_id:
            text = _get(delta, "text", "") or ""
            if not text:
                return []
            self._text_parts.append(text)
            return [TextDelta(text=text)]

        if delta_type == "input_json_delta" and tool_id:
            chunk = _get(delta, "partial_json", "") or ""
            self._tool_blocks[tool_id].fragments.append(chunk)
            self.state = ParserState.ACCUMULATING_FRAGMENTS
            return [ToolFragment(id=tool_id, partial_args_chunk=chunk)]

        return []

    def _on_block_stop(self, frame: Any) -> list[StreamEvent]:
        index = _get(frame, "index", 0)
        if index not in self._open_blocks:
            return []

        tool_id = self._open_blocks.pop(index)
        self.state = ParserState.IDLE
        if not tool_id:
            return []

        block = self._tool_blocks.pop(tool_id)
        args = _parse_arguments(tool_id, "".join(block.fragments))
        return [ToolComplete(id=block.id, name=block.name, args=args)]

    def _on_message_delta(self, frame: Any) -> list[StreamEvent]:
        delta = _get(frame, "delta")
        stop_reason = _get(delta, "stop_reason")
        if stop_reason is not None:
            self.stop_reason = stop_reason
        usage = _get(frame, "usage")
        output_tokens = _get(usage, "output_tokens")
        if output_tokens is not None:
            self.usage.output_tokens = output_tokens
        return []

    def _on_message_stop(self) -> list[StreamEvent]:
        if self._tool_blocks:
            raise IncompleteTurnError(
                f"Turn ended with {len(self._tool_blocks)} unclosed tool block(s)",
                open_tool_ids=self.open_tool_ids(),
                partial_text=self.partial_text,
            )
        self.state = ParserState.TURN_ENDED
        return [
            TurnEnd(
                usage=self.usage.model_copy(),
                stop_reason=self.stop_reason,
                message_id=self.message_id,
                model=self.model,
            )
        ]


async def parse_stream(frames: AsyncIterable[Any]) -> AsyncIterator[StreamEvent]:
    """
    Lazily parse one turn's frame feed into StreamEvents.

    Args:
        frames: Async iterable of raw streaming frames

    Yields:
        StreamEvents in arrival order, TurnEnd last

    Raises:
        IncompleteTurnError: If the feed stops or fails before ``message_stop``
    """
    parser = StreamParser()
    iterator = aiter(frames)

    while not parser.finished:
        try:
            frame = await anext(iterator)
        except StopAsyncIteration:
            break
        except Exception as e:
            raise IncompleteTurnError(
                f"Stream interrupted: {e}",
                open_tool_ids=parser.open_tool_ids(),
                partial_text=parser.partial_text,
                cause=e,
            ) from e

        for event in parser.feed(frame):
            yield event

    if not parser.finished:
        open_ids = parser.open_tool_ids()
        raise IncompleteTurnError(
            f"Stream ended before turn completed ({len(open_ids)} open tool block(s))",
            open_tool_ids=open_ids,
            partial_text=parser.partial_text,
        )


# =============================================================================
# Turn collection
# =============================================================================


class ParsedTurn(BaseModel):
    """Everything one completed turn produced."""

    message_id: str = ""
    model: str = ""
    text: str = ""
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    stop_reason: str | None = None

    def assistant_content(self) -> list[dict[str, Any]]:
        """Assistant message content blocks to replay on the next request."""
        blocks: list[dict[str, Any]] = []
        if self.text:
            blocks.append({"type": "text", "text": self.text})
        blocks.extend(invocation.to_api_block() for invocation in self.tool_invocations)
        return blocks


class TurnCollector:
    """Folds StreamEvents into a ParsedTurn while they are being forwarded."""

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self._invocations: list[ToolInvocation] = []
        self._turn_end: TurnEnd | None = None

    def observe(self, event: StreamEvent) -> None:
        if isinstance(event, TextDelta):
            self._text_parts.append(event.text)
        elif isinstance(event, ToolComplete):
            self._invocations.append(ToolInvocation.from_complete(event))
        elif isinstance(event, TurnEnd):
            self._turn_end = event

    def result(self) -> ParsedTurn:
        turn_end = self._turn_end or TurnEnd()
        return ParsedTurn(
            message_id=turn_end.message_id,
            model=turn_end.model,
            text="".join(self._text_parts),
            tool_invocations=list(self._invocations),
            usage=turn_end.usage,
            stop_reason=turn_end.stop_reason,
        )


async def collect_turn(frames: AsyncIterable[Any]) -> ParsedTurn:
    """Parse a whole turn and return its collected result."""
    collector = TurnCollector()
    async for event in parse_stream(frames):
        collector.observe(event)
    return collector.result()
