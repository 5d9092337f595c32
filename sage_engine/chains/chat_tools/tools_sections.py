"""Scene section tool implementations.

Each handler writes section content to the session's section store (so
propagation tools can scan it later in the same turn) and stages a panel
notification for the client.
"""

from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_stream import HandlerResult
from sage_engine.core.schemas_tools import (
    DETAIL_SECTIONS,
    SECTION_LABELS,
    InvalidateWave3Input,
    SetWaveInput,
    UpdateSectionInput,
    WarnBalanceInput,
)

from .context import ToolContext

logger = get_logger(__name__)


async def _update_section(ctx: ToolContext, params: UpdateSectionInput) -> HandlerResult:
    """Overwrite one section's content."""
    ctx.sections.set(params.scene_arc_id, params.section_id, params.content)

    ctx.events.emit(
        "panel:section",
        {
            "scene_arc_id": params.scene_arc_id,
            "section_id": params.section_id,
            "content": params.content,
            "streaming": False,
        },
    )

    return HandlerResult(
        result={
            "status": "section_updated",
            "scene_arc_id": params.scene_arc_id,
            "section_id": params.section_id,
        }
    )


async def _set_wave(ctx: ToolContext, params: SetWaveInput) -> HandlerResult:
    """
    Populate every section of a wave at once.

    Sections are written in the order given, then one panel:sections
    notification describes the whole wave.
    """
    section_data = []
    for entry in params.sections:
        ctx.sections.set(params.scene_arc_id, entry.section_id, entry.content)
        section_data.append(
            {
                "id": entry.section_id,
                "label": SECTION_LABELS.get(entry.section_id, entry.section_id),
                "content": entry.content,
                "wave": params.wave,
                "has_detail": entry.section_id in DETAIL_SECTIONS,
            }
        )

    ctx.events.emit(
        "panel:sections",
        {
            "scene_arc_id": params.scene_arc_id,
            "wave": params.wave,
            "sections": section_data,
        },
    )

    logger.info(f"Wave {params.wave} populated for {params.scene_arc_id}: {len(section_data)} sections")

    return HandlerResult(
        result={
            "status": "wave_populated",
            "scene_arc_id": params.scene_arc_id,
            "wave": params.wave,
            "section_count": len(section_data),
        }
    )


async def _invalidate_wave3(ctx: ToolContext, params: InvalidateWave3Input) -> HandlerResult:
    ctx.events.emit(
        "panel:wave3_invalidated",
        {"scene_arc_id": params.scene_arc_id, "reason": params.reason},
    )
    return HandlerResult(
        result={
            "status": "wave3_invalidated",
            "scene_arc_id": params.scene_arc_id,
            "reason": params.reason,
        }
    )


async def _warn_balance(ctx: ToolContext, params: WarnBalanceInput) -> HandlerResult:
    data = {"scene_arc_id": params.scene_arc_id, "message": params.message}
    if params.section_id:
        data["section_id"] = params.section_id
    ctx.events.emit("panel:balance_warning", data)

    return HandlerResult(
        result={
            "status": "balance_warning_sent",
            "scene_arc_id": params.scene_arc_id,
            "message": params.message,
        }
    )
