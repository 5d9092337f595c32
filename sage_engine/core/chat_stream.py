"""Chat streaming engine: Anthropic streaming with a multi-turn tool loop."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from anthropic import (
    APIConnectionError,
    APITimeoutError,
    AsyncAnthropic,
    InternalServerError,
    RateLimitError,
)

from sage_engine.chains.chat_tools import ToolRegistry, get_tool_definitions
from sage_engine.core.errors import IncompleteTurnError
from sage_engine.core.event_buffer import EventBuffer
from sage_engine.core.logging import get_logger, log_with_context
from sage_engine.core.stream_parser import TurnCollector, parse_stream

logger = get_logger(__name__)

MAX_TOOL_TURNS = 5
HISTORY_WINDOW = 10

_RETRYABLE_ERRORS = (APIConnectionError, APITimeoutError, InternalServerError, RateLimitError)


@dataclass
class ChatStreamConfig:
    """Explicit inputs for a chat streaming session."""

    conversation_id: str
    message: str
    conversation_history: list[dict[str, Any]] = field(default_factory=list)
    system_prompt: str = ""
    anthropic_api_key: str = ""
    chat_model: str = "claude-sonnet-4-20250514"
    chat_response_buffer: int = 4096
    max_tool_turns: int = MAX_TOOL_TURNS
    max_retries: int = 3
    retry_initial_delay: float = 1.0
    tool_result_event_max_chars: int | None = 2000
    tools: list[dict[str, Any]] | None = None  # Defaults to every scene tool


def _sse_event(data: dict) -> str:
    """Format a dict as an SSE data line."""
    return f"data: {json.dumps(data, default=str)}\n\n"


def _build_messages(config: ChatStreamConfig) -> list[dict[str, Any]]:
    recent_history = [
        {"role": msg["role"], "content": msg["content"]}
        for msg in config.conversation_history[-HISTORY_WINDOW:]
        if msg.get("content")
    ]
    return recent_history + [{"role": "user", "content": config.message}]


async def _open_stream(
    client: Any,
    config: ChatStreamConfig,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]],
) -> Any:
    """
    Start a streaming request, retrying transient failures.

    Only opening the stream is retried. Once frames are flowing, a broken
    stream surfaces as IncompleteTurnError from the parser.

    Raises:
        The last transient error once every attempt has failed
    """
    request: dict[str, Any] = {
        "model": config.chat_model,
        "max_tokens": config.chat_response_buffer,
        "messages": messages,
        "tools": tools,
        "stream": True,
    }
    if config.system_prompt:
        request["system"] = config.system_prompt

    attempts = max(config.max_retries, 1)
    for attempt in range(attempts):
        try:
            return await client.messages.create(**request)
        except _RETRYABLE_ERRORS as e:
            if attempt < attempts - 1:
                delay = config.retry_initial_delay * (2**attempt)
                logger.warning(f"Stream attempt {attempt + 1} failed: {e}. Retry in {delay}s")
                await asyncio.sleep(delay)
            else:
                logger.error(f"All {attempts} stream attempts failed: {e}")
                raise


async def generate_chat_stream(
    config: ChatStreamConfig,
    registry: ToolRegistry,
    events: EventBuffer,
    client: Any = None,
    cancel_event: asyncio.Event | None = None,
) -> AsyncGenerator[str, None]:
    """Generate streaming chat responses with tool loop.

    Yields SSE events: conversation_id → text → tool_start/tool_end →
    panel:* → done/error. Each turn's tool calls are dispatched only after
    the turn's stream has terminated cleanly.

    Args:
        config: Session inputs
        registry: Handlers for the tools offered to the service
        events: Buffer the handlers stage panel notifications in
        client: AsyncAnthropic-compatible client (built from the config if omitted)
        cancel_event: Once set, no further tool calls or turns are started
    """
    total_input = 0
    total_output = 0

    try:
        yield _sse_event({"type": "conversation_id", "conversation_id": config.conversation_id})

        if client is None:
            client = AsyncAnthropic(api_key=config.anthropic_api_key)

        messages = _build_messages(config)
        tools = config.tools if config.tools is not None else get_tool_definitions()
        cancelled = False
        turns = 0

        for turn in range(config.max_tool_turns):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            turns = turn + 1
            stream = await _open_stream(client, config, messages, tools)

            collector = TurnCollector()
            try:
                async with stream:
                    async for event in parse_stream(stream):
                        collector.observe(event)
                        if event.type == "text_delta":
                            yield _sse_event({"type": "text", "content": event.text})
            except IncompleteTurnError as e:
                logger.warning(
                    f"Turn {turns} incomplete: {e} (open tool blocks: {e.open_tool_ids})"
                )
                yield _sse_event(
                    {
                        "type": "error",
                        "message": str(e),
                        "incomplete": True,
                        "open_tool_ids": e.open_tool_ids,
                    }
                )
                return

            parsed = collector.result()
            total_input += parsed.usage.input_tokens
            total_output += parsed.usage.output_tokens

            if not parsed.tool_invocations:
                break

            log_with_context(
                logger,
                logging.INFO,
                f"Turn {turns}: dispatching {len(parsed.tool_invocations)} tool call(s)",
                turn_id=parsed.message_id,
                conversation_id=config.conversation_id,
                tools=",".join(i.name for i in parsed.tool_invocations),
            )
            dispatch = await registry.dispatch(parsed.tool_invocations, cancel_event=cancel_event)

            for lifecycle in dispatch.events:
                yield _sse_event(lifecycle.to_payload(config.tool_result_event_max_chars))

            for panel_event in events.drain_all():
                yield _sse_event({"type": panel_event.type, "data": panel_event.data})

            if dispatch.cancelled:
                cancelled = True
                break

            messages.append({"role": "assistant", "content": parsed.assistant_content()})
            messages.append(
                {
                    "role": "user",
                    "content": [result.to_api_block() for result in dispatch.tool_results],
                }
            )
        else:
            logger.warning(f"Tool loop stopped after {config.max_tool_turns} turns")

        logger.info(
            f"Chat complete for {config.conversation_id}: turns={turns}, "
            f"input_tokens={total_input}, output_tokens={total_output}"
        )

        yield _sse_event(
            {
                "type": "done",
                "input_tokens": total_input,
                "output_tokens": total_output,
                "turns": turns,
                "cancelled": cancelled,
            }
        )

    except Exception as e:
        logger.error(f"Error in chat stream: {e}", exc_info=True)
        yield _sse_event({"type": "error", "message": str(e)})
