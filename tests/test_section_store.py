"""Tests for the section store and pending event buffer."""

from sage_engine.core.event_buffer import EventBuffer
from sage_engine.core.schemas_propagation import ContentSection
from sage_engine.core.schemas_stream import PanelEvent
from sage_engine.core.section_store import SectionStore


class TestSectionStore:
    def test_get_missing_returns_none(self):
        store = SectionStore()
        assert store.get("arc-1", "setup") is None

    def test_last_write_wins(self):
        store = SectionStore()
        store.set("arc-1", "setup", "first")
        store.set("arc-1", "setup", "second")

        assert store.get("arc-1", "setup") == "second"

    def test_get_all_in_first_write_order(self):
        store = SectionStore()
        store.set("arc-1", "transitions", "t")
        store.set("arc-1", "setup", "s")
        store.set("arc-1", "transitions", "t2")

        assert store.get_all("arc-1") == [
            ContentSection(section_id="transitions", content="t2"),
            ContentSection(section_id="setup", content="s"),
        ]

    def test_scopes_are_isolated(self):
        store = SectionStore()
        store.set("arc-1", "setup", "one")
        store.set("arc-2", "setup", "two")

        assert store.get("arc-1", "setup") == "one"
        assert store.get_all("arc-3") == []
        assert store.scopes() == ["arc-1", "arc-2"]

    def test_seed_and_clear(self):
        store = SectionStore()
        store.seed("arc-1", [ContentSection(section_id="overview", content="o")])
        assert store.get("arc-1", "overview") == "o"

        store.clear()
        assert store.scopes() == []


class TestEventBuffer:
    def test_drain_returns_in_order_and_empties(self):
        buffer = EventBuffer()
        buffer.emit("panel:section", {"section_id": "setup"})
        buffer.append(PanelEvent(type="panel:balance_warning", data={"message": "m"}))

        assert len(buffer) == 2
        drained = buffer.drain_all()

        assert [e.type for e in drained] == ["panel:section", "panel:balance_warning"]
        assert len(buffer) == 0
        assert buffer.drain_all() == []

    def test_buffers_are_independent(self):
        first, second = EventBuffer(), EventBuffer()
        first.emit("panel:section", {})

        assert len(second) == 0
