"""
Arc pre-production pipeline.

Runs the eight stages in order for every episode of an arc, feeding each
stage's artifact into the next. A failed stage ends the run; the stages
completed before it are returned (and persisted, when the run is tied to a
stored story bible) so the client can resume from there.
"""

from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from greenlit.core.constants import STAGE_ORDER, STAGE_SPECS, Input, Stage, arc_document_id
from greenlit.core.exceptions import ValidationFailure
from greenlit.core.logging_config import get_run_logger
from greenlit.models.requests import ArcRunRequest
from greenlit.models.story_bible import Episode
from greenlit.pipeline.base_pipeline import BasePipeline, PipelineResult, PipelineStep
from greenlit.pipeline.context import StageContext
from greenlit.pipeline.progress import (
    ChannelReporter,
    CompositeReporter,
    ProgressHub,
    ProgressReporter,
    StatusEndpointReporter,
)
from greenlit.pipeline.stages import StageService, error_body, error_event
from greenlit.storage.repositories import PreProductionRepository

StageCallback = Callable[[Stage, Dict[str, Any]], None]


class ArcPreProductionPipeline(BasePipeline[StageContext, Dict[str, Any]]):
    """Sequential eight-stage run over an arc's context."""

    def __init__(self, stages: StageService, reporter: Optional[ProgressReporter] = None,
                 on_stage_complete: Optional[StageCallback] = None):
        self.stages = stages
        self.on_stage_complete = on_stage_complete
        super().__init__("arc_preproduction", reporter)

    def _define_steps(self) -> None:
        self._steps = [
            PipelineStep(stage.value, STAGE_SPECS[stage].display_name)
            for stage in STAGE_ORDER
        ]

    def _initial_state(self, input_data: StageContext) -> Dict[str, Any]:
        return {}

    async def _execute_step(self, step: PipelineStep, state: Dict[str, Any],
                            context: Dict[str, Any]) -> Dict[str, Any]:
        stage = Stage(step.name)
        ctx: StageContext = context["ctx"]

        artifact = await self.stages.generate(stage, ctx)
        ctx.artifacts[stage] = artifact
        if self.on_stage_complete:
            self.on_stage_complete(stage, artifact)
        return {**state, stage.value: artifact}


class ArcRunner:
    """Starts arc runs and publishes their outcome to the progress hub."""

    def __init__(self, stages: StageService, hub: ProgressHub,
                 preproduction: Optional[PreProductionRepository] = None,
                 status_endpoint_url: str = ""):
        self.stages = stages
        self.hub = hub
        self.preproduction = preproduction
        self.status_endpoint_url = status_endpoint_url

    @staticmethod
    def build_context(request: ArcRunRequest) -> StageContext:
        """Context for the first stage: the story bible and the arc's episodes in order."""
        try:
            numbers = [Episode.model_validate(ep).episode_number for ep in request.arc_episodes]
        except ValidationError as e:
            raise ValidationFailure("Invalid arc episode", str(e))

        episodes = [ep for _, ep in sorted(zip(numbers, request.arc_episodes), key=lambda pair: pair[0])]
        return StageContext(
            scope="arc",
            episode_numbers=sorted(set(numbers)),
            artifacts={Input.STORY_BIBLE: request.story_bible_data, Input.EPISODE: episodes},
            sources={Input.STORY_BIBLE.value: "request", Input.EPISODE.value: "request"},
            include_images=request.include_images,
        )

    def _persister(self, request: ArcRunRequest) -> Optional[StageCallback]:
        if not (self.preproduction and request.user_id and request.story_bible_id):
            return None
        doc_id = arc_document_id(request.arc_index)

        def persist(stage: Stage, artifact: Dict[str, Any]) -> None:
            self.preproduction.save_stage(request.user_id, request.story_bible_id, doc_id, stage, artifact)

        return persist

    async def run(self, request: ArcRunRequest, run_id: str) -> PipelineResult:
        """Run every stage, publishing progress and the terminal event on the run's channel."""
        log = get_run_logger("pipeline.arc", run_id)
        channel = self.hub.channel(run_id)
        reporters = [ChannelReporter(channel)]
        if self.status_endpoint_url:
            reporters.append(StatusEndpointReporter(self.status_endpoint_url, run_id))

        try:
            ctx = self.build_context(request)
        except ValidationFailure as e:
            channel.publish(error_event(e, runId=run_id))
            raise

        pipeline = ArcPreProductionPipeline(
            self.stages,
            reporter=CompositeReporter(reporters),
            on_stage_complete=self._persister(request),
        )
        log.info(f"Starting arc {request.arc_index} for episodes {ctx.episode_numbers}")
        result = await pipeline.run(ctx, {"ctx": ctx})

        if result.success:
            log.info(f"Completed in {result.duration_seconds:.1f}s")
            channel.publish({"type": "complete", **self.success_payload(result, run_id)})
        else:
            log.warning(f"Stopped at {result.failed_step}: {result.error}")
            channel.publish(error_event(
                result.error,
                runId=run_id,
                failedStage=result.failed_step,
                partialPreProduction=result.output,
                stageStates={k: v.value for k, v in result.step_states.items()},
            ))
        return result

    async def run_in_background(self, request: ArcRunRequest, run_id: str) -> Optional[PipelineResult]:
        try:
            return await self.run(request, run_id)
        except ValidationFailure as e:
            get_run_logger("pipeline.arc", run_id).warning(f"Rejected: {e}")
            return None

    @staticmethod
    def success_payload(result: PipelineResult, run_id: str) -> Dict[str, Any]:
        return {
            "success": True,
            "runId": run_id,
            "preProduction": result.output,
            "stageStates": {k: v.value for k, v in result.step_states.items()},
            "durationSeconds": round(result.duration_seconds, 2),
            "scope": "arc",
        }

    @staticmethod
    def failure_payload(result: PipelineResult, run_id: str) -> Dict[str, Any]:
        return {
            "success": False,
            **error_body(result.error),
            "runId": run_id,
            "failedStage": result.failed_step,
            "partialPreProduction": result.output,
            "stageStates": {k: v.value for k, v in result.step_states.items()},
        }
