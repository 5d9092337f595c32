"""Pydantic models for cross-section propagation.

When an entity (NPC, adversary, item) changes in one section, the change is
described by an EntityChange, classified into a PropagationType, and then
either applied mechanically (DeterministicPropagationResult) or handed back
to the service as advice (SemanticPropagationHint).
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


EntityType = Literal["npc", "adversary", "item"]


class PropagationType(str, Enum):
    """Strategy for keeping other sections consistent with a change."""

    DETERMINISTIC = "deterministic"
    SEMANTIC = "semantic"
    BOTH = "both"
    NONE = "none"


class ContentSection(BaseModel):
    """A named unit of document content within a scope."""

    section_id: str
    content: str


class ValueChange(BaseModel):
    """Old/new pair for one bundled attribute change."""

    old: str
    new: str


class EntityChange(BaseModel):
    """One observed mutation to a named entity."""

    entity_type: EntityType
    entity_id: str
    change_type: str
    old_value: str
    new_value: str
    additional_changes: dict[str, ValueChange] | None = None


class UpdatedSection(BaseModel):
    section_id: str
    updated_content: str
    replacement_count: int


class DeterministicPropagationResult(BaseModel):
    """Literal substitutions applied across sections."""

    updated_sections: list[UpdatedSection] = Field(default_factory=list)
    total_replacements: int = 0


class AffectedSection(BaseModel):
    section_id: str
    current_content: str


class SemanticPropagationHint(BaseModel):
    """Advisory instruction for the service's next turn. Never applied here."""

    entity_name: str
    change_description: str
    affected_sections: list[AffectedSection] = Field(default_factory=list)
    suggested_action: str
