"""Pre-production status router.

Polling snapshot, external progress updates and streamed subscription
for generation runs.
"""

from fastapi import APIRouter, Depends

from greenlit.api.deps import AppServices, get_services
from greenlit.api.routers.generation import streaming_response
from greenlit.core.exceptions import NotFoundError, ValidationFailure
from greenlit.core.logging_config import get_logger
from greenlit.models.requests import ProgressUpdateRequest
from greenlit.pipeline.progress import GenerationProgress

logger = get_logger("api.status")

router = APIRouter()


def _channel_or_404(services: AppServices, run_id: str):
    channel = services.hub.get(run_id)
    if channel is None:
        raise NotFoundError(f"No progress recorded for run '{run_id}'")
    return channel


@router.post("")
async def update_status(body: ProgressUpdateRequest, services: AppServices = Depends(get_services)):
    """Accept an external progress update or reset a run."""
    if body.action == "reset":
        channel = services.hub.reset(body.run_id)
        return {"success": True, **channel.snapshot()}

    if not body.progress:
        raise ValidationFailure("progress is required for action 'update'")

    progress = GenerationProgress.from_dict(body.progress)
    channel = services.hub.channel(body.run_id)
    channel.publish({"type": "progress", "progress": progress.to_dict()})
    if progress.is_complete:
        channel.publish({"type": "complete", "progress": progress.to_dict()})
    return {"success": True, **channel.snapshot()}


@router.get("/{run_id}")
async def get_status(run_id: str, services: AppServices = Depends(get_services)):
    """Latest progress snapshot for a run."""
    return _channel_or_404(services, run_id).snapshot()


@router.get("/{run_id}/stream")
async def stream_status(run_id: str, services: AppServices = Depends(get_services)):
    """Replay a run's events, then follow it live until it finishes."""
    return streaming_response(_channel_or_404(services, run_id))
