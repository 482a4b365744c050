"""
Stage gate.

Rejects a stage request whose prerequisites are absent, before any
provider call is made.
"""

from greenlit.core.constants import REMEDIATION_HINTS, REQUEST_FIELDS, STAGE_SPECS, Stage
from greenlit.core.exceptions import MissingPrerequisiteError
from greenlit.core.logging_config import get_logger
from greenlit.pipeline.context import StageContext

logger = get_logger("pipeline.gate")


class StageGate:
    """Checks a resolved context against the prerequisite table."""

    def check(self, stage: Stage, ctx: StageContext) -> None:
        """
        Raise MissingPrerequisiteError for the first absent dependency.

        Args:
            stage: Stage about to run
            ctx: Resolved context for the request
        """
        for dep in STAGE_SPECS[stage].requires:
            if ctx.has(dep):
                continue
            hint = REMEDIATION_HINTS[dep]
            if ctx.scope == "arc" and ctx.episode_numbers:
                episodes = ", ".join(str(n) for n in ctx.episode_numbers)
                hint = f"{hint} for episodes {episodes}"
            logger.info(f"Rejected {stage.value} ({ctx.scope}): missing {REQUEST_FIELDS[dep]}")
            raise MissingPrerequisiteError(stage.value, REQUEST_FIELDS[dep], hint)
