"""Tests for the scene section tools."""

import pytest

from sage_engine.chains.chat_tools import ToolContext, build_tool_registry
from sage_engine.core.schemas_stream import ToolInvocation

ARC = "arc-1"


@pytest.fixture
def ctx():
    return ToolContext()


@pytest.fixture
def registry(ctx):
    return build_tool_registry(ctx)


async def _run(registry, name, **params):
    dispatch = await registry.dispatch([ToolInvocation(id="toolu_1", name=name, input=params)])
    return dispatch.tool_results[0], dispatch.events[1].result


class TestUpdateSection:
    @pytest.mark.asyncio
    async def test_writes_store_and_emits_panel_event(self, ctx, registry):
        tool_result, result = await _run(
            registry, "update_section", scene_arc_id=ARC, section_id="setup", content="The gate groans."
        )

        assert tool_result.is_error is False
        assert result["status"] == "section_updated"
        assert ctx.sections.get(ARC, "setup") == "The gate groans."

        events = ctx.events.drain_all()
        assert [e.type for e in events] == ["panel:section"]
        assert events[0].data == {
            "scene_arc_id": ARC,
            "section_id": "setup",
            "content": "The gate groans.",
            "streaming": False,
        }

    @pytest.mark.asyncio
    async def test_unknown_section_rejected(self, ctx, registry):
        tool_result, _ = await _run(registry, "update_section", scene_arc_id=ARC, section_id="epilogue", content="x")

        assert tool_result.is_error is True
        assert "section_id" in tool_result.content
        assert ctx.sections.get_all(ARC) == []
        assert len(ctx.events) == 0

    @pytest.mark.asyncio
    async def test_missing_scene_arc_id_rejected(self, registry):
        tool_result, _ = await _run(registry, "update_section", section_id="setup", content="x")

        assert tool_result.is_error is True
        assert tool_result.content.startswith('Invalid input for tool "update_section"')


class TestSetWave:
    @pytest.mark.asyncio
    async def test_populates_wave(self, ctx, registry):
        sections = [
            {"section_id": "overview", "content": "A tense parley."},
            {"section_id": "setup", "content": "Aldric waits."},
            {"section_id": "npcs_present", "content": "Aldric"},
        ]
        tool_result, result = await _run(registry, "set_wave", scene_arc_id=ARC, wave=1, sections=sections)

        assert tool_result.is_error is False
        assert result["section_count"] == 3
        assert [s.section_id for s in ctx.sections.get_all(ARC)] == ["overview", "setup", "npcs_present"]

        event = ctx.events.drain_all()[0]
        assert event.type == "panel:sections"
        assert event.data["wave"] == 1
        assert [s["label"] for s in event.data["sections"]] == ["Overview", "Setup", "NPCs Present"]
        assert [s["has_detail"] for s in event.data["sections"]] == [False, True, False]

    @pytest.mark.asyncio
    async def test_invalid_wave_rejected(self, ctx, registry):
        tool_result, _ = await _run(
            registry, "set_wave", scene_arc_id=ARC, wave=4, sections=[{"section_id": "setup", "content": "x"}]
        )

        assert tool_result.is_error is True
        assert "wave" in tool_result.content
        assert ctx.sections.get_all(ARC) == []

    @pytest.mark.asyncio
    async def test_empty_sections_rejected(self, registry):
        tool_result, _ = await _run(registry, "set_wave", scene_arc_id=ARC, wave=2, sections=[])

        assert tool_result.is_error is True
        assert "sections" in tool_result.content


class TestNotifications:
    @pytest.mark.asyncio
    async def test_invalidate_wave3(self, ctx, registry):
        _, result = await _run(registry, "invalidate_wave3", scene_arc_id=ARC, reason="Villain changed")

        assert result["status"] == "wave3_invalidated"
        event = ctx.events.drain_all()[0]
        assert event.type == "panel:wave3_invalidated"
        assert event.data == {"scene_arc_id": ARC, "reason": "Villain changed"}

    @pytest.mark.asyncio
    async def test_warn_balance_with_section(self, ctx, registry):
        await _run(registry, "warn_balance", scene_arc_id=ARC, message="Too many adversaries", section_id="adversaries")

        event = ctx.events.drain_all()[0]
        assert event.type == "panel:balance_warning"
        assert event.data["section_id"] == "adversaries"

    @pytest.mark.asyncio
    async def test_warn_balance_without_section(self, ctx, registry):
        await _run(registry, "warn_balance", scene_arc_id=ARC, message="Pacing drags")

        event = ctx.events.drain_all()[0]
        assert "section_id" not in event.data
