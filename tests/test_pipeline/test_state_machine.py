"""
Tests for the pre-production state machine.
"""

import pytest

from greenlit.core.constants import PreProductionState, Stage
from greenlit.core.exceptions import MissingPrerequisiteError
from greenlit.pipeline.state_machine import (
    available_stages,
    completed_stages,
    derive_state,
    validate_transition,
)


class TestDeriveState:
    """Tests for derive_state."""

    def test_empty_document(self):
        assert derive_state({}) == PreProductionState.NOT_STARTED

    def test_null_artifacts_are_absent(self):
        assert derive_state({"scripts": None, "scriptBreakdown": None}) == PreProductionState.NOT_STARTED

    def test_furthest_contiguous_stage(self, artifacts):
        doc = {k: artifacts[k] for k in ("scripts", "scriptBreakdown", "storyboards")}
        assert derive_state(doc) == PreProductionState.STORYBOARD_READY

    def test_gap_stops_progression(self, artifacts):
        doc = {k: artifacts[k] for k in ("scripts", "scriptBreakdown", "props", "locations")}
        assert derive_state(doc) == PreProductionState.BREAKDOWN_READY

    def test_all_stages_complete(self, artifacts):
        assert derive_state(artifacts) == PreProductionState.COMPLETE

    def test_completed_and_available(self, artifacts):
        doc = {"scripts": artifacts["scripts"], "scriptBreakdown": artifacts["scriptBreakdown"]}

        assert completed_stages(doc) == ["scripts", "scriptBreakdown"]
        assert "props" in available_stages(doc)
        assert "postProduction" not in available_stages(doc)


class TestValidateTransition:
    """Tests for validate_transition."""

    def test_breakdown_requires_scripts(self):
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            validate_transition({}, Stage.SCRIPT_BREAKDOWN)
        assert exc_info.value.missing == "scripts"

    def test_storyboards_require_breakdown(self, artifacts):
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            validate_transition({"scripts": artifacts["scripts"]}, Stage.STORYBOARDS)
        assert exc_info.value.missing == "scriptBreakdown"

    def test_scripts_have_no_stage_prerequisites(self):
        validate_transition({}, Stage.SCRIPTS)

    def test_props_allowed_out_of_order(self, artifacts):
        doc = {"scripts": artifacts["scripts"], "scriptBreakdown": artifacts["scriptBreakdown"]}
        validate_transition(doc, Stage.LOCATIONS)
        validate_transition(doc, Stage.PROPS)

    def test_rerun_of_completed_stage_allowed(self, artifacts):
        validate_transition(artifacts, Stage.SCRIPTS)
        validate_transition(artifacts, Stage.POST_PRODUCTION)
