"""
Stage service.

Ties the aggregator, gate, invoker and image search together for the
single-stage routes and the arc pipeline.
"""

from typing import Any, Dict, List, Tuple

from greenlit.core.constants import Stage
from greenlit.core.exceptions import GreenlitError
from greenlit.core.logging_config import get_logger, get_run_logger
from greenlit.llm.image_cache import ImageSearchService
from greenlit.models.requests import StageRequest
from greenlit.pipeline.context import ContextAggregator, StageContext
from greenlit.pipeline.gate import StageGate
from greenlit.pipeline.invoker import GenerationInvoker
from greenlit.pipeline.progress import GenerationProgress, ProgressChannel

logger = get_logger("pipeline.stages")


def error_body(exc: Exception) -> Dict[str, Any]:
    """Client-facing error body for any failure raised during generation."""
    if isinstance(exc, GreenlitError):
        return exc.to_dict()
    return {"error": "Generation failed", "details": str(exc), "type": "internal"}


def error_event(exc: Exception, **extra: Any) -> Dict[str, Any]:
    """Stream event for a failed run. The error category moves to ``errorType``."""
    body = error_body(exc)
    body["errorType"] = body.pop("type")
    return {"type": "error", **body, **extra}


class StageService:
    """Resolve, gate and generate one stage."""

    def __init__(self, aggregator: ContextAggregator, gate: StageGate,
                 invoker: GenerationInvoker, images: ImageSearchService):
        self.aggregator = aggregator
        self.gate = gate
        self.invoker = invoker
        self.images = images

    def resolve(self, stage: Stage, request: StageRequest) -> StageContext:
        """Build the context for a request and check its prerequisites."""
        ctx = self.aggregator.build(request)
        self.gate.check(stage, ctx)
        return ctx

    async def generate(self, stage: Stage, ctx: StageContext) -> Dict[str, Any]:
        self.gate.check(stage, ctx)
        logger.info(f"Generating {stage.value} ({ctx.scope}, episodes {ctx.episode_numbers or '-'})")
        artifact = await self.invoker.generate_stage(stage, ctx)

        if stage == Stage.LOCATIONS and ctx.include_images:
            locations = artifact.get("locations") or []
            artifact = {**artifact, "locations": await self.images.attach_images(locations, "location")}
        return artifact

    async def run(self, stage: Stage, request: StageRequest) -> Tuple[Dict[str, Any], StageContext]:
        ctx = self.resolve(stage, request)
        return await self.generate(stage, ctx), ctx

    async def stream_storyboards(self, ctx: StageContext, channel: ProgressChannel) -> Dict[str, Any]:
        """
        Generate storyboards one breakdown scene at a time, publishing each
        scene as it completes. Ends the channel with a complete or error event.
        """
        scenes = (ctx.get(Stage.SCRIPT_BREAKDOWN) or {}).get("scenes") or []
        script = ctx.get(Stage.SCRIPTS)
        total = max(len(scenes), 1)
        boards: List[Dict[str, Any]] = []

        try:
            self.gate.check(Stage.STORYBOARDS, ctx)
            for index, scene in enumerate(scenes):
                scene = scene if isinstance(scene, dict) else {"content": scene}
                label = f"Scene {scene.get('sceneNumber', index + 1)}"
                channel.publish({
                    "type": "progress",
                    "progress": GenerationProgress.at(index, label, 0, f"Storyboarding {label.lower()}",
                                                      total).to_dict(),
                })
                board = await self.invoker.generate_scene_storyboard(scene, script)
                for key in ("sceneNumber", "episodeNumber"):
                    if key in scene:
                        board.setdefault(key, scene[key])
                boards.append(board)
                channel.publish({
                    "type": "progress",
                    "progress": GenerationProgress.at(index, label, 100, f"{label} storyboarded",
                                                      total).to_dict(),
                    "scene": board,
                })
        except Exception as e:
            get_run_logger("pipeline.stages", channel.run_id).error(f"Storyboard stream failed: {e}")
            channel.publish(error_event(e, partialStoryboards={"scenes": boards}))
            return {"scenes": boards}

        result = {"scenes": boards, "totalScenes": len(boards)}
        channel.publish({"type": "complete", "storyboards": result, "scope": ctx.scope})
        return result
