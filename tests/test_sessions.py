"""Tests for per-conversation sessions and turn serialization."""

import asyncio
import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from sage_engine.core.chat_stream import ChatStreamConfig
from sage_engine.core.schemas_propagation import ContentSection
from sage_engine.core.sessions import ChatSession, SessionRegistry
from tests.fakes.anthropic_stream import AsyncFrameIterator, text_turn, tool_turn

ARC = "arc-1"


def _events(chunks: List[str]) -> List[dict]:
    return [json.loads(chunk[len("data: "):]) for chunk in chunks]


def _mock_client(*turns):
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=[AsyncFrameIterator(frames) for frames in turns])
    return client


def _config(message: str) -> ChatStreamConfig:
    return ChatStreamConfig(
        conversation_id="conv-1",
        message=message,
        anthropic_api_key="test-key",
        retry_initial_delay=0.0,
    )


def _update(tool_id: str, section_id: str, content: str) -> tuple:
    args = {"scene_arc_id": ARC, "section_id": section_id, "content": content}
    return (tool_id, "update_section", args)


def _panel_sections(events: List[dict]) -> List[str]:
    return [e["data"]["section_id"] for e in events if e["type"] == "panel:section"]


async def _drain(gen) -> List[str]:
    return [chunk async for chunk in gen]


class TestStreamTurn:
    @pytest.mark.asyncio
    async def test_overlapping_turns_run_one_at_a_time(self):
        session = ChatSession(conversation_id="conv-1")
        client_a = _mock_client(
            tool_turn([_update("toolu_a", "setup", "Aldric stands at the gate.")]),
            text_turn("Setup written."),
        )
        client_b = _mock_client(
            tool_turn([_update("toolu_b", "gm_notes", "Aldric is lying.")]),
            text_turn("Notes written."),
        )

        turn_a = session.stream_turn(_config("Write the setup"), client=client_a)
        a_chunks = []
        while not a_chunks or '"tool_start"' not in a_chunks[-1]:
            a_chunks.append(await anext(turn_a))

        # A is suspended with its panel notification still buffered
        turn_b = asyncio.create_task(_drain(session.stream_turn(_config("Write notes"), client=client_b)))
        for _ in range(5):
            await asyncio.sleep(0)

        assert not turn_b.done()
        client_b.messages.create.assert_not_awaited()

        a_chunks.extend(await _drain(turn_a))
        b_chunks = await turn_b

        a_events = _events(a_chunks)
        b_events = _events(b_chunks)
        assert _panel_sections(a_events) == ["setup"]
        assert _panel_sections(b_events) == ["gm_notes"]
        assert a_events[-1]["type"] == "done"
        assert b_events[-1]["type"] == "done"
        assert not session.busy

    @pytest.mark.asyncio
    async def test_queued_turn_does_not_uncancel_running_turn(self):
        session = ChatSession(conversation_id="conv-1")
        client_a = _mock_client(
            tool_turn([_update("toolu_a", "setup", "Aldric stands at the gate.")]),
            text_turn("never requested"),
        )
        client_b = _mock_client(text_turn("Second turn."))

        turn_a = session.stream_turn(_config("Write the setup"), client=client_a)
        await anext(turn_a)  # conversation_id
        session.cancel_event.set()

        turn_b = asyncio.create_task(_drain(session.stream_turn(_config("Again"), client=client_b)))
        await asyncio.sleep(0)
        assert session.cancel_event.is_set()

        a_events = _events([chunk async for chunk in turn_a])
        b_events = _events(await turn_b)

        assert a_events[-1]["cancelled"] is True
        assert client_a.messages.create.await_count == 0
        assert b_events[-1] == {
            "type": "done",
            "input_tokens": 10,
            "output_tokens": 20,
            "turns": 1,
            "cancelled": False,
        }

    @pytest.mark.asyncio
    async def test_sections_seeded_before_turn(self):
        session = ChatSession(conversation_id="conv-1")
        rename = {"scene_arc_id": ARC, "old_name": "Aldric", "new_name": "Theron"}
        client = _mock_client(tool_turn([("toolu_1", "propagate_rename", rename)]), text_turn("Done."))
        seed = {ARC: [ContentSection(section_id="setup", content="Aldric stands at the gate.")]}

        await _drain(session.stream_turn(_config("Rename"), client=client, sections=seed))

        assert session.context.sections.get(ARC, "setup") == "Theron stands at the gate."


class TestSessionRegistry:
    def test_get_or_create_reuses_session(self):
        sessions = SessionRegistry()

        first = sessions.get_or_create("conv-1")

        assert sessions.get_or_create("conv-1") is first
        assert len(sessions) == 1

    def test_discard_removes_and_cancels(self):
        sessions = SessionRegistry()
        session = sessions.get_or_create("conv-1")

        assert sessions.discard("conv-1") is session
        assert session.cancel_event.is_set()
        assert sessions.get("conv-1") is None
        assert len(sessions) == 0

    def test_discard_unknown_returns_none(self):
        assert SessionRegistry().discard("nope") is None
