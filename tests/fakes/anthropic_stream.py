"""Fake Anthropic streaming frames for pipeline tests.

Frames are plain dicts shaped like the Messages API raw stream events, which
the stream parser accepts alongside SDK event objects.
"""

import json
from typing import Any, Dict, List


class AsyncFrameIterator:
    """Async iterator over frames, optionally raising after the last one.

    Closable like the SDK's AsyncStream; ``closed`` records whether the
    consumer released it.
    """

    def __init__(self, items, error: Exception | None = None):
        self._items = list(items)
        self._idx = 0
        self._error = error
        self.closed = False

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._idx >= len(self._items):
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        item = self._items[self._idx]
        self._idx += 1
        return item


def message_start(message_id: str = "msg_1", input_tokens: int = 10) -> Dict[str, Any]:
    return {
        "type": "message_start",
        "message": {
            "id": message_id,
            "model": "claude-sonnet-4-20250514",
            "usage": {"input_tokens": input_tokens, "output_tokens": 1},
        },
    }


def text_block(index: int, *chunks: str) -> List[Dict[str, Any]]:
    frames = [{"type": "content_block_start", "index": index, "content_block": {"type": "text", "text": ""}}]
    frames += [
        {"type": "content_block_delta", "index": index, "delta": {"type": "text_delta", "text": c}}
        for c in chunks
    ]
    frames.append({"type": "content_block_stop", "index": index})
    return frames


def tool_block_open(index: int, tool_id: str, name: str) -> Dict[str, Any]:
    return {
        "type": "content_block_start",
        "index": index,
        "content_block": {"type": "tool_use", "id": tool_id, "name": name, "input": {}},
    }


def tool_fragment(index: int, chunk: str) -> Dict[str, Any]:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "input_json_delta", "partial_json": chunk},
    }


def block_stop(index: int) -> Dict[str, Any]:
    return {"type": "content_block_stop", "index": index}


def tool_block(index: int, tool_id: str, name: str, args: Dict[str, Any], pieces: int = 3) -> List[Dict[str, Any]]:
    """A complete tool block whose JSON arguments arrive in ``pieces`` chunks."""
    raw = json.dumps(args)
    size = max(1, -(-len(raw) // pieces))
    chunks = [raw[i : i + size] for i in range(0, len(raw), size)]
    return [tool_block_open(index, tool_id, name)] + [tool_fragment(index, c) for c in chunks] + [block_stop(index)]


def message_end(stop_reason: str = "end_turn", output_tokens: int = 20) -> List[Dict[str, Any]]:
    return [
        {"type": "message_delta", "delta": {"stop_reason": stop_reason}, "usage": {"output_tokens": output_tokens}},
        {"type": "message_stop"},
    ]


def text_turn(*chunks: str, input_tokens: int = 10, output_tokens: int = 20) -> List[Dict[str, Any]]:
    return [message_start(input_tokens=input_tokens), *text_block(0, *chunks), *message_end("end_turn", output_tokens)]


def tool_turn(calls: List[tuple], text: str = "", input_tokens: int = 10, output_tokens: int = 20) -> List[Dict[str, Any]]:
    """A turn that requests each ``(tool_id, name, args)`` in order."""
    frames = [message_start(input_tokens=input_tokens)]
    index = 0
    if text:
        frames += text_block(index, text)
        index += 1
    for tool_id, name, args in calls:
        frames += tool_block(index, tool_id, name, args)
        index += 1
    frames += message_end("tool_use", output_tokens)
    return frames
