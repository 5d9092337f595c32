"""Cross-section propagation tool implementations.

These handlers read every section of a scene from the session's section
store, apply or describe an entity change, and stage panel notifications:

- propagate_rename: literal find-and-replace across sections
- propagate_semantic: hint listing the sections the service should revisit
- propagate_entity_change: classifies a change and routes to one or both
"""

from typing import Any

from sage_engine.core.change_classifier import detect_propagation_type
from sage_engine.core.logging import get_logger
from sage_engine.core.propagation import (
    build_deterministic_propagation,
    build_semantic_propagation_hint,
)
from sage_engine.core.schemas_propagation import (
    EntityChange,
    PropagationType,
    SemanticPropagationHint,
)
from sage_engine.core.schemas_stream import HandlerResult
from sage_engine.core.schemas_tools import (
    PropagateEntityChangeInput,
    PropagateRenameInput,
    PropagateSemanticInput,
)

from .context import ToolContext

logger = get_logger(__name__)


# =============================================================================
# Shared steps
# =============================================================================


def _apply_rename(
    ctx: ToolContext,
    scene_arc_id: str,
    old_name: str,
    new_name: str,
    origin_section_id: str | None = None,
) -> dict[str, Any]:
    """Replace a name across a scene, write results back and stage events."""
    if old_name == new_name:
        return {
            "status": "no_propagation_needed",
            "reason": "Old and new names are identical",
        }

    sections = ctx.sections.get_all(scene_arc_id)
    if not sections:
        return {"status": "no_sections_cached", "scene_arc_id": scene_arc_id}

    propagation = build_deterministic_propagation(sections, old_name, new_name, origin_section_id)

    for updated in propagation.updated_sections:
        ctx.sections.set(scene_arc_id, updated.section_id, updated.updated_content)
        ctx.events.emit(
            "panel:section",
            {
                "scene_arc_id": scene_arc_id,
                "section_id": updated.section_id,
                "content": updated.updated_content,
                "streaming": False,
            },
        )

    ctx.events.emit(
        "panel:propagation_deterministic",
        {
            "scene_arc_id": scene_arc_id,
            "old_name": old_name,
            "new_name": new_name,
            "updated_sections": [
                {"section_id": s.section_id, "replacement_count": s.replacement_count}
                for s in propagation.updated_sections
            ],
            "total_replacements": propagation.total_replacements,
        },
    )

    logger.info(
        f"Rename '{old_name}' -> '{new_name}' in {scene_arc_id}: "
        f"{propagation.total_replacements} replacements across "
        f"{len(propagation.updated_sections)} sections"
    )

    return {
        "status": "rename_propagated",
        "scene_arc_id": scene_arc_id,
        "old_name": old_name,
        "new_name": new_name,
        "sections_updated": len(propagation.updated_sections),
        "total_replacements": propagation.total_replacements,
    }


def _build_hint(
    ctx: ToolContext,
    scene_arc_id: str,
    change: EntityChange,
    entity_name: str,
) -> SemanticPropagationHint:
    hint = build_semantic_propagation_hint(change, ctx.sections.get_all(scene_arc_id), entity_name)

    ctx.events.emit(
        "panel:propagation_semantic",
        {
            "scene_arc_id": scene_arc_id,
            "entity_name": entity_name,
            "change_type": change.change_type,
            "affected_section_ids": [s.section_id for s in hint.affected_sections],
            "suggested_action": hint.suggested_action,
        },
    )
    return hint


def _hint_result(scene_arc_id: str, hint: SemanticPropagationHint) -> dict[str, Any]:
    return {
        "status": "semantic_propagation_hint",
        "scene_arc_id": scene_arc_id,
        "entity_name": hint.entity_name,
        "affected_sections": len(hint.affected_sections),
        "suggested_action": hint.suggested_action,
        "hint": hint.model_dump(),
    }


def _rename_pair(params: PropagateEntityChangeInput) -> tuple[str, str]:
    """Old/new name for the rename half of a combined change."""
    extras = params.additional_changes or {}
    if "name" in extras:
        return extras["name"].old, extras["name"].new
    return params.old_value, params.new_value


# =============================================================================
# Handlers
# =============================================================================


async def _propagate_rename(ctx: ToolContext, params: PropagateRenameInput) -> HandlerResult:
    result = _apply_rename(
        ctx,
        params.scene_arc_id,
        params.old_name,
        params.new_name,
        params.origin_section_id,
    )
    return HandlerResult(result=result)


async def _propagate_semantic(ctx: ToolContext, params: PropagateSemanticInput) -> HandlerResult:
    change = EntityChange(
        entity_type="npc",
        entity_id="runtime",
        change_type=params.change_type,
        old_value=params.old_value,
        new_value=params.new_value,
    )
    hint = _build_hint(ctx, params.scene_arc_id, change, params.entity_name)
    return HandlerResult(result=_hint_result(params.scene_arc_id, hint))


async def _propagate_entity_change(
    ctx: ToolContext, params: PropagateEntityChangeInput
) -> HandlerResult:
    """
    Classify an entity change and apply the matching propagation.

    For a combined change the rename runs first, so the hint is built over
    the renamed sections and keyed on the new name.
    """
    change = EntityChange(
        entity_type=params.entity_type,
        entity_id=params.entity_id,
        change_type=params.change_type,
        old_value=params.old_value,
        new_value=params.new_value,
        additional_changes=params.additional_changes,
    )
    propagation_type = detect_propagation_type(change)
    logger.info(f"Entity change '{params.change_type}' on {params.entity_name}: {propagation_type.value}")

    if propagation_type == PropagationType.NONE:
        return HandlerResult(
            result={
                "status": "no_propagation_needed",
                "propagation_type": propagation_type.value,
                "change_type": params.change_type,
            }
        )

    if propagation_type == PropagationType.DETERMINISTIC:
        rename = _apply_rename(
            ctx,
            params.scene_arc_id,
            params.old_value,
            params.new_value,
            params.origin_section_id,
        )
        return HandlerResult(result={"propagation_type": propagation_type.value, **rename})

    if propagation_type == PropagationType.SEMANTIC:
        hint = _build_hint(ctx, params.scene_arc_id, change, params.entity_name)
        return HandlerResult(
            result={"propagation_type": propagation_type.value, **_hint_result(params.scene_arc_id, hint)}
        )

    old_name, new_name = _rename_pair(params)
    rename = _apply_rename(ctx, params.scene_arc_id, old_name, new_name, params.origin_section_id)
    hint = _build_hint(ctx, params.scene_arc_id, change, new_name)

    return HandlerResult(
        result={
            "status": "combined_propagation",
            "propagation_type": propagation_type.value,
            "rename": rename,
            "semantic": _hint_result(params.scene_arc_id, hint),
        }
    )
