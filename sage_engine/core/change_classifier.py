"""Change classifier for cross-section propagation.

Maps an entity change onto a propagation strategy with ordered, table-driven
rules. Pure and total: no I/O, never raises, same input → same output.
New change types are added to the tables, not to the rule logic.
"""

from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_propagation import EntityChange, PropagationType

logger = get_logger(__name__)


# =========================
# Change Type Tables
# =========================

# Pure renames: literal find-and-replace is enough
DETERMINISTIC_CHANGE_TYPES = frozenset({"rename"})

# Deep attribute changes the service has to reconcile itself
SEMANTIC_CHANGE_TYPES = frozenset(
    {
        "motivation",
        "role",
        "description",
        "backstory",
        "voice",
        "secret",
    }
)

# A rename bundled with a deeper change
COMBINED_CHANGE_TYPES = frozenset(
    {
        "rename_and_role",
        "rename_and_motivation",
    }
)


# =========================
# Classification
# =========================


def detect_propagation_type(change: EntityChange) -> PropagationType:
    """Classify an entity change. First matching rule wins.

    Rules:
        1. Identical values and no bundled changes mapping → none (no-op resubmission)
        2. Combined change type → both
        3. Pure rename → deterministic
        4. Deep attribute change → semantic
        5. Anything else → none (unrecognized types are not errors)
    """
    if change.old_value == change.new_value and change.additional_changes is None:
        return PropagationType.NONE

    if change.change_type in COMBINED_CHANGE_TYPES:
        return PropagationType.BOTH

    if change.change_type in DETERMINISTIC_CHANGE_TYPES:
        return PropagationType.DETERMINISTIC

    if change.change_type in SEMANTIC_CHANGE_TYPES:
        return PropagationType.SEMANTIC

    logger.debug(f"Unrecognized change type '{change.change_type}', no propagation")
    return PropagationType.NONE
