"""Documents router for Greenlit API.

Story bibles and pre-production documents in the hierarchical store.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query

from greenlit.api.deps import AppServices, get_services
from greenlit.core.constants import parse_stage
from greenlit.core.exceptions import ValidationFailure
from greenlit.core.logging_config import get_logger
from greenlit.pipeline.state_machine import describe

logger = get_logger("api.documents")

router = APIRouter()


@router.get("/story-bibles/{user_id}/{story_bible_id}")
async def get_story_bible(user_id: str, story_bible_id: str, services: AppServices = Depends(get_services)):
    return {"success": True, "storyBible": services.story_bibles.get(user_id, story_bible_id)}


@router.put("/story-bibles/{user_id}/{story_bible_id}")
async def save_story_bible(
    user_id: str,
    story_bible_id: str,
    story_bible: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    """Save a story bible. Each save increments its version."""
    saved = services.story_bibles.save(user_id, story_bible_id, story_bible)
    return {"success": True, "storyBible": saved, "version": saved["version"]}


@router.get("/preproduction/{user_id}/{story_bible_id}/arc-aggregate")
async def aggregate_arc(
    user_id: str,
    story_bible_id: str,
    episodes: str = Query(..., description="Comma-separated episode numbers"),
    services: AppServices = Depends(get_services),
):
    """Aggregate stored episode documents across an arc."""
    try:
        numbers = [int(n) for n in episodes.split(",") if n.strip()]
    except ValueError:
        raise ValidationFailure("episodes must be comma-separated integers")
    if not numbers:
        raise ValidationFailure("episodes must name at least one episode")
    return {"success": True, **services.aggregator.aggregate_arc(user_id, story_bible_id, numbers)}


@router.get("/preproduction/{user_id}/{story_bible_id}/{doc_id}")
async def get_preproduction(user_id: str, story_bible_id: str, doc_id: str,
                            services: AppServices = Depends(get_services)):
    """Fetch a pre-production document, creating it empty on first visit."""
    doc = services.preproduction.get_or_create(user_id, story_bible_id, doc_id)
    return {"success": True, "document": doc, **describe(doc)}


@router.put("/preproduction/{user_id}/{story_bible_id}/{doc_id}/{stage_name}")
async def save_stage(
    user_id: str,
    story_bible_id: str,
    doc_id: str,
    stage_name: str,
    artifact: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    """Store one stage artifact once its prerequisite stages are present."""
    stage = parse_stage(stage_name)
    doc = services.preproduction.save_stage(user_id, story_bible_id, doc_id, stage, artifact)
    return {"success": True, "document": doc, **describe(doc)}
