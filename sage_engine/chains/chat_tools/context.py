"""Per-session state handed to tool handlers."""

from dataclasses import dataclass, field

from sage_engine.core.event_buffer import EventBuffer
from sage_engine.core.section_store import SectionStore


@dataclass
class ToolContext:
    """Shared mutable state for one session's handlers.

    Handlers of the same dispatch call see each other's writes because
    dispatch is sequential; nothing here is locked.
    """

    sections: SectionStore = field(default_factory=SectionStore)
    events: EventBuffer = field(default_factory=EventBuffer)
