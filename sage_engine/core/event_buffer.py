"""Pending side-channel notifications staged by tool handlers.

Handlers append PanelEvents while a turn is dispatched; the transport
drains them once dispatch finishes. One buffer per session or turn, passed
to handlers by reference.
"""

from sage_engine.core.schemas_stream import PanelEvent


class EventBuffer:
    """Append/drain queue of PanelEvents."""

    def __init__(self) -> None:
        self._events: list[PanelEvent] = []

    def append(self, event: PanelEvent) -> None:
        self._events.append(event)

    def emit(self, event_type: str, data: dict) -> PanelEvent:
        """Build and append a PanelEvent in one step."""
        event = PanelEvent(type=event_type, data=data)
        self._events.append(event)
        return event

    def drain_all(self) -> list[PanelEvent]:
        """Return every pending event, oldest first, and empty the buffer."""
        events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        return len(self._events)
