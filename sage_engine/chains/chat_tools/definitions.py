"""Tool definitions for the scene authoring assistant.

7 tools, in two groups:
- sections: update_section, set_wave, invalidate_wave3, warn_balance
- propagation: propagate_rename, propagate_semantic, propagate_entity_change
"""

from typing import Any

from sage_engine.core.schemas_tools import SECTION_LABELS

_SECTION_IDS = list(SECTION_LABELS)

_SCENE_ARC_ID = {
    "type": "string",
    "description": "ID of the scene arc being written",
}


def get_tool_definitions() -> list[dict[str, Any]]:
    """Get tool definitions for the Claude Messages API."""
    return [
        # =====================================================================
        # Sections
        # =====================================================================
        {
            "name": "update_section",
            "description": (
                "Replace the full content of one scene section. Use for targeted "
                "edits after a wave has been written."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "section_id": {
                        "type": "string",
                        "enum": _SECTION_IDS,
                        "description": "Section to overwrite",
                    },
                    "content": {
                        "type": "string",
                        "description": "New section content (markdown)",
                    },
                },
                "required": ["scene_arc_id", "section_id", "content"],
            },
        },
        {
            "name": "set_wave",
            "description": (
                "Write every section of a wave at once. Wave 1 is the scene "
                "frame, wave 2 its cast and items, wave 3 the GM-facing layer."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "wave": {
                        "type": "integer",
                        "enum": [1, 2, 3],
                        "description": "Wave number",
                    },
                    "sections": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "properties": {
                                "section_id": {"type": "string", "enum": _SECTION_IDS},
                                "content": {"type": "string"},
                            },
                            "required": ["section_id", "content"],
                        },
                        "description": "Sections belonging to this wave",
                    },
                },
                "required": ["scene_arc_id", "wave", "sections"],
            },
        },
        {
            "name": "invalidate_wave3",
            "description": (
                "Mark wave 3 as stale after an earlier wave changed in a way "
                "that breaks it."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "reason": {
                        "type": "string",
                        "description": "What changed and why wave 3 no longer holds",
                    },
                },
                "required": ["scene_arc_id", "reason"],
            },
        },
        {
            "name": "warn_balance",
            "description": "Flag a balance concern (encounter difficulty, pacing) to the user.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "message": {
                        "type": "string",
                        "description": "Short description of the concern",
                    },
                    "section_id": {
                        "type": "string",
                        "enum": _SECTION_IDS,
                        "description": "Section the concern is about, if any",
                    },
                },
                "required": ["scene_arc_id", "message"],
            },
        },
        # =====================================================================
        # Propagation
        # =====================================================================
        {
            "name": "propagate_rename",
            "description": (
                "Replace every whole-word occurrence of a name across the scene's "
                "sections. Case-sensitive. Call after renaming an NPC, adversary "
                "or item."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "old_name": {"type": "string", "description": "Name to replace"},
                    "new_name": {"type": "string", "description": "Replacement name"},
                    "origin_section_id": {
                        "type": "string",
                        "description": "Section where the rename was already made; skipped",
                    },
                },
                "required": ["scene_arc_id", "old_name", "new_name"],
            },
        },
        {
            "name": "propagate_semantic",
            "description": (
                "List the sections that mention an entity whose motivation, role, "
                "description, backstory, voice or secret changed. Returns the "
                "affected sections for you to revise; nothing is edited."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "entity_name": {"type": "string", "description": "Entity's current name"},
                    "change_type": {
                        "type": "string",
                        "description": "motivation, role, description, backstory, voice or secret",
                    },
                    "old_value": {"type": "string"},
                    "new_value": {"type": "string"},
                },
                "required": ["scene_arc_id", "entity_name", "change_type"],
            },
        },
        {
            "name": "propagate_entity_change",
            "description": (
                "Report any entity change and let the engine decide how to keep "
                "sections consistent: renames are applied, deeper changes come "
                "back as a revision hint, combined changes get both."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "scene_arc_id": _SCENE_ARC_ID,
                    "entity_type": {"type": "string", "enum": ["npc", "adversary", "item"]},
                    "entity_id": {"type": "string"},
                    "entity_name": {
                        "type": "string",
                        "description": "Entity's name before this change",
                    },
                    "change_type": {
                        "type": "string",
                        "description": "e.g. rename, role, motivation, rename_and_role",
                    },
                    "old_value": {"type": "string"},
                    "new_value": {"type": "string"},
                    "additional_changes": {
                        "type": "object",
                        "description": "Other fields changed at the same time, as {field: {old, new}}",
                        "additionalProperties": {
                            "type": "object",
                            "properties": {
                                "old": {"type": "string"},
                                "new": {"type": "string"},
                            },
                            "required": ["old", "new"],
                        },
                    },
                    "origin_section_id": {"type": "string"},
                },
                "required": ["scene_arc_id", "entity_name", "change_type"],
            },
        },
    ]
