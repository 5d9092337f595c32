"""In-memory section content store for cross-section propagation.

Holds ``(scope, section_id) -> content`` for the lifetime of a session.
Written by section tool handlers so propagation handlers can scan every
section of a scene without a round trip to persistence. Last write wins;
nothing is deleted here (persistence is someone else's job).

Not thread-safe: dispatch runs handlers one at a time, so writes made by
one handler are visible to the next without locking.
"""

from sage_engine.core.schemas_propagation import ContentSection


class SectionStore:
    """Keyed section storage, one instance per session."""

    def __init__(self) -> None:
        self._scopes: dict[str, dict[str, str]] = {}

    def get(self, scope: str, section_id: str) -> str | None:
        """Return a section's content, or None if it was never written."""
        return self._scopes.get(scope, {}).get(section_id)

    def set(self, scope: str, section_id: str, content: str) -> None:
        """Create or overwrite a section."""
        self._scopes.setdefault(scope, {})[section_id] = content

    def get_all(self, scope: str) -> list[ContentSection]:
        """All sections of a scope, in first-write order."""
        sections = self._scopes.get(scope)
        if not sections:
            return []
        return [
            ContentSection(section_id=section_id, content=content)
            for section_id, content in sections.items()
        ]

    def seed(self, scope: str, sections: list[ContentSection]) -> None:
        """Load pre-existing content (e.g. restored from persistence)."""
        for section in sections:
            self.set(scope, section.section_id, section.content)

    def scopes(self) -> list[str]:
        return list(self._scopes)

    def clear(self) -> None:
        self._scopes.clear()
