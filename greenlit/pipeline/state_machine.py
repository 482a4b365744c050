"""
Pre-production state machine.

A document's state is derived from which stage artifacts it holds: the
furthest stage along STAGE_ORDER such that every earlier stage is present.
Saves are validated against the prerequisite table, independent of order.
"""

from typing import Any, Dict, List, Mapping

from greenlit.core.constants import (
    REMEDIATION_HINTS,
    STAGE_ORDER,
    STAGE_SPECS,
    STATE_AFTER,
    PreProductionState,
    Stage,
)
from greenlit.core.exceptions import MissingPrerequisiteError


def has_artifact(doc: Mapping[str, Any], stage: Stage) -> bool:
    return bool(doc.get(stage.value))


def derive_state(doc: Mapping[str, Any]) -> PreProductionState:
    """Derive the state of a pre-production document."""
    state = PreProductionState.NOT_STARTED
    for stage in STAGE_ORDER:
        if not has_artifact(doc, stage):
            break
        state = STATE_AFTER[stage]
    return state


def completed_stages(doc: Mapping[str, Any]) -> List[str]:
    return [stage.value for stage in STAGE_ORDER if has_artifact(doc, stage)]


def available_stages(doc: Mapping[str, Any]) -> List[str]:
    """Stages whose stage prerequisites are all present in the document."""
    return [
        stage.value for stage in STAGE_ORDER
        if all(has_artifact(doc, dep) for dep in STAGE_SPECS[stage].requires if isinstance(dep, Stage))
    ]


def validate_transition(doc: Mapping[str, Any], stage: Stage) -> None:
    """
    Check that ``stage`` may be stored on ``doc``.

    Re-saving a stage that is already present is allowed.

    Raises:
        MissingPrerequisiteError: naming the first absent upstream stage
    """
    spec = STAGE_SPECS[stage]
    for dep in spec.requires:
        if isinstance(dep, Stage) and not has_artifact(doc, dep):
            raise MissingPrerequisiteError(stage.value, dep.value, REMEDIATION_HINTS[dep])


def describe(doc: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "state": derive_state(doc).value,
        "completedStages": completed_stages(doc),
        "availableStages": available_stages(doc),
    }
