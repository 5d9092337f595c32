"""Pydantic input models for the scene authoring tools.

Each tool registers one of these as its input model, so handlers receive a
validated payload instead of a raw dict.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from sage_engine.core.schemas_propagation import EntityType, ValueChange


# =============================================================================
# Scene sections
# =============================================================================

SectionId = Literal[
    "overview",
    "setup",
    "developments",
    "npcs_present",
    "adversaries",
    "items",
    "transitions",
    "portents",
    "gm_notes",
]

SECTION_LABELS: dict[str, str] = {
    "overview": "Overview",
    "setup": "Setup",
    "developments": "Developments",
    "npcs_present": "NPCs Present",
    "adversaries": "Adversaries",
    "items": "Items",
    "transitions": "Transitions",
    "portents": "Portents",
    "gm_notes": "GM Notes",
}

# Sections whose panel entry expands into a detail view
DETAIL_SECTIONS = frozenset({"setup", "developments", "transitions"})

WaveNumber = Literal[1, 2, 3]


# =============================================================================
# Section tools
# =============================================================================


class UpdateSectionInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    section_id: SectionId
    content: str


class WaveSectionEntry(BaseModel):
    section_id: SectionId
    content: str


class SetWaveInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    wave: WaveNumber
    sections: list[WaveSectionEntry] = Field(..., min_length=1)


class InvalidateWave3Input(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class WarnBalanceInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    section_id: SectionId | None = None


# =============================================================================
# Propagation tools
# =============================================================================


class PropagateRenameInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)
    origin_section_id: str | None = None  # Section already edited by hand


class PropagateSemanticInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    entity_name: str = Field(..., min_length=1)
    change_type: str = Field(..., min_length=1)
    old_value: str = ""
    new_value: str = ""


class PropagateEntityChangeInput(BaseModel):
    scene_arc_id: str = Field(..., min_length=1)
    entity_type: EntityType = "npc"
    entity_id: str = "runtime"
    entity_name: str = Field(..., min_length=1)  # Name as it appears before the change
    change_type: str = Field(..., min_length=1)
    old_value: str = ""
    new_value: str = ""
    additional_changes: dict[str, ValueChange] | None = None
    origin_section_id: str | None = None
