"""Generation router for Greenlit API.

One endpoint per pre-production stage, story bible generation, and the
arc pre-production run (JSON and streamed).
"""

from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from greenlit.api.deps import AppServices, get_services
from greenlit.api.limits import generation_limit, limiter
from greenlit.core.constants import STAGE_SPECS, Stage
from greenlit.core.exceptions import GreenlitError
from greenlit.core.logging_config import get_logger
from greenlit.models.requests import ArcRunRequest, StageRequest, StoryBibleRequest
from greenlit.pipeline.progress import SSE_HEADERS, ProgressChannel, sse_frame

logger = get_logger("api.generation")

router = APIRouter()


async def event_stream(channel: ProgressChannel) -> AsyncGenerator[str, None]:
    """Relay a run's events as SSE frames until it completes or fails."""
    async for event in channel.subscribe():
        yield sse_frame(event)


def streaming_response(channel: ProgressChannel) -> StreamingResponse:
    return StreamingResponse(event_stream(channel), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/story-bible")
@limiter.limit(generation_limit)
async def generate_story_bible(
    request: Request,
    body: StoryBibleRequest,
    services: AppServices = Depends(get_services),
):
    """Generate a story bible from a premise."""
    try:
        story_bible = await services.invoker.generate_story_bible(body.premise, body.genre, body.title)
        return {"success": True, "storyBible": story_bible, "message": "Story bible generated"}
    except GreenlitError:
        raise
    except Exception as e:
        logger.error(f"Story bible generation error: {e}")
        raise GreenlitError("Failed to generate story bible", str(e))


@router.post("/arc-preproduction")
@limiter.limit(generation_limit)
async def generate_arc_preproduction(
    request: Request,
    body: ArcRunRequest,
    services: AppServices = Depends(get_services),
):
    """Run all eight stages for an arc, publishing progress under the run id."""
    run_id = body.run_id or services.hub.new_run_id()
    services.arc_runner.build_context(body)
    services.hub.start(run_id)
    result = await services.arc_runner.run(body, run_id)

    if result.success:
        return services.arc_runner.success_payload(result, run_id)

    status_code = result.error.status_code if isinstance(result.error, GreenlitError) else 500
    return JSONResponse(status_code=status_code, content=services.arc_runner.failure_payload(result, run_id))


@router.post("/arc-preproduction/stream")
@limiter.limit(generation_limit)
async def stream_arc_preproduction(
    request: Request,
    body: ArcRunRequest,
    services: AppServices = Depends(get_services),
):
    """Run all eight stages for an arc, streaming progress as server-sent events."""
    run_id = body.run_id or services.hub.new_run_id()
    services.arc_runner.build_context(body)
    channel = services.hub.start(run_id)
    services.spawn(services.arc_runner.run_in_background(body, run_id))
    return streaming_response(channel)


@router.post("/storyboards/stream")
@limiter.limit(generation_limit)
async def stream_storyboards(
    request: Request,
    body: StageRequest,
    services: AppServices = Depends(get_services),
):
    """Generate storyboards scene by scene, streaming each scene as it completes."""
    ctx = services.stages.resolve(Stage.STORYBOARDS, body)
    channel = services.hub.channel(services.hub.new_run_id())
    services.spawn(services.stages.stream_storyboards(ctx, channel))
    return streaming_response(channel)


def _stage_endpoint(stage: Stage):
    spec = STAGE_SPECS[stage]

    async def endpoint(
        request: Request,
        body: StageRequest,
        services: AppServices = Depends(get_services),
    ):
        try:
            artifact, ctx = await services.stages.run(stage, body)
            return {
                "success": True,
                stage.value: artifact,
                "message": f"{spec.display_name} generated",
                "scope": ctx.scope,
                "episodeNumbers": ctx.episode_numbers,
            }
        except GreenlitError:
            raise
        except Exception as e:
            logger.error(f"{spec.display_name} generation error: {e}")
            raise GreenlitError(f"Failed to generate {spec.display_name.lower()}", str(e))

    endpoint.__name__ = f"generate_{stage.name.lower()}"
    endpoint.__qualname__ = endpoint.__name__
    endpoint.__doc__ = f"Generate {spec.display_name.lower()} for an episode or an arc."
    return endpoint


for _spec in STAGE_SPECS.values():
    router.add_api_route(
        f"/{_spec.route}",
        limiter.limit(generation_limit)(_stage_endpoint(_spec.stage)),
        methods=["POST"],
        name=f"generate_{_spec.stage.name.lower()}",
    )
