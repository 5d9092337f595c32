"""Cross-section propagation builders.

When an entity is modified in one section, other sections that mention it
may drift out of sync. Two strategies exist:

- **Deterministic**: literal name replacement across sections. Handles
  renames without involving the service.
- **Semantic**: deeper changes (motivation, role, description...) that need
  the service to rewrite how sections reference the entity. Produces a hint
  for the next turn; nothing is modified here.

Both operate on ContentSection lists and return new values; the caller
decides what to write back to the section store.
"""

from sage_engine.core.name_matching import scan_sections_for_name
from sage_engine.core.schemas_propagation import (
    AffectedSection,
    ContentSection,
    DeterministicPropagationResult,
    EntityChange,
    SemanticPropagationHint,
    UpdatedSection,
)

# Per change type guidance appended to every semantic hint
SUGGESTED_ACTIONS: dict[str, str] = {
    "motivation": "Revise dialogue and behavior to reflect the new motivation.",
    "role": "Adjust interactions and narrative framing for the new role.",
    "description": "Update physical descriptions and first-impression text.",
    "backstory": "Revise any backstory references or foreshadowing.",
    "voice": "Adjust dialogue style and speech patterns.",
    "secret": "Update any hints or clues related to this secret.",
}
DEFAULT_SUGGESTED_ACTION = "Review and update affected content as appropriate."


# =============================================================================
# Deterministic Propagation
# =============================================================================


def build_deterministic_propagation(
    sections: list[ContentSection],
    old_name: str,
    new_name: str,
    exclude_section_id: str | None = None,
) -> DeterministicPropagationResult:
    """
    Replace a name across sections.

    Args:
        sections: Sections to scan
        old_name: Name being replaced
        new_name: Replacement name
        exclude_section_id: Section where the edit was already applied

    Returns:
        Only sections with at least one replacement, plus the total count
    """
    if exclude_section_id:
        sections = [s for s in sections if s.section_id != exclude_section_id]

    if old_name == new_name:
        return DeterministicPropagationResult()

    updated_sections = [
        UpdatedSection(
            section_id=scan.section_id,
            updated_content=scan.updated_content or "",
            replacement_count=scan.match_count,
        )
        for scan in scan_sections_for_name(sections, old_name, new_name)
    ]

    return DeterministicPropagationResult(
        updated_sections=updated_sections,
        total_replacements=sum(s.replacement_count for s in updated_sections),
    )


# =============================================================================
# Semantic Propagation
# =============================================================================


def build_semantic_propagation_hint(
    change: EntityChange,
    sections: list[ContentSection],
    entity_name: str,
) -> SemanticPropagationHint:
    """
    Build an instruction telling the service which sections to revisit.

    Sections are matched with the same word-boundary rule as the
    deterministic layer. Each affected section carries its full content.
    """
    matched_ids = {scan.section_id for scan in scan_sections_for_name(sections, entity_name)}

    affected_sections = [
        AffectedSection(section_id=s.section_id, current_content=s.content)
        for s in sections
        if s.section_id in matched_ids
    ]

    return SemanticPropagationHint(
        entity_name=entity_name,
        change_description=format_change_description(change),
        affected_sections=affected_sections,
        suggested_action=format_suggested_action(change, entity_name),
    )


# =============================================================================
# Formatting Helpers
# =============================================================================


def format_change_description(change: EntityChange) -> str:
    description = f'Entity {change.change_type} changed: "{change.old_value}" -> "{change.new_value}"'
    if change.additional_changes:
        extras = ", ".join(
            f'{field} "{value.old}" -> "{value.new}"'
            for field, value in change.additional_changes.items()
        )
        description = f"{description}; also {extras}"
    return description


def format_suggested_action(change: EntityChange, entity_name: str) -> str:
    # Combined types ("rename_and_role") take the guidance of their deep half
    deep_type = change.change_type.removeprefix("rename_and_")
    action = SUGGESTED_ACTIONS.get(deep_type, DEFAULT_SUGGESTED_ACTION)
    return (
        f"Please update all references to {entity_name} to reflect the "
        f"{change.change_type} change. {action}"
    )
