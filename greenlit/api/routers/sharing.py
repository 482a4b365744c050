"""Share link router for Greenlit API."""

from fastapi import APIRouter, Depends, Query

from greenlit.api.deps import AppServices, get_services
from greenlit.core.logging_config import get_logger
from greenlit.models.requests import ExtendRequest, OwnerRequest, ShareCreateRequest, ShareUpdateRequest

logger = get_logger("api.sharing")

router = APIRouter()


@router.post("/share-story-bible")
async def share_story_bible(body: ShareCreateRequest, services: AppServices = Depends(get_services)):
    """Create a share link over a copy of a story bible."""
    created = services.shares.create(body.story_bible, body.owner_id, body.owner_name, body.expires_at)
    return {"success": True, **created}


@router.get("/shared/{link_id}")
async def get_shared(link_id: str, services: AppServices = Depends(get_services)):
    return {"success": True, **services.shares.get(link_id)}


@router.put("/shared/{link_id}")
async def update_shared(link_id: str, body: ShareUpdateRequest,
                        services: AppServices = Depends(get_services)):
    return {"success": True, **services.shares.update(link_id, body.updates)}


@router.post("/share-links/{link_id}/revoke")
async def revoke_link(link_id: str, body: OwnerRequest, services: AppServices = Depends(get_services)):
    return {"success": True, **services.shares.revoke(link_id, body.owner_id)}


@router.post("/share-links/{link_id}/extend")
async def extend_link(link_id: str, body: ExtendRequest, services: AppServices = Depends(get_services)):
    return {"success": True, **services.shares.extend_expiration(link_id, body.owner_id, body.expires_at)}


@router.get("/share-links/{link_id}/logs")
async def access_logs(link_id: str, owner_id: str = Query(..., alias="ownerId"),
                      services: AppServices = Depends(get_services)):
    """Access log and analytics, visible to the link owner only."""
    return {"success": True, **services.shares.get_access_logs(link_id, owner_id)}
