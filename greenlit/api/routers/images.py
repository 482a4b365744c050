"""Images router for Greenlit API."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from greenlit.api.deps import AppServices, get_services
from greenlit.api.limits import generation_limit, limiter
from greenlit.models.requests import ImageSearchRequest

router = APIRouter()


@router.post("/search")
@limiter.limit(generation_limit)
async def search_images(
    request: Request,
    body: ImageSearchRequest,
    services: AppServices = Depends(get_services),
):
    """Search reference images, answering repeated (type, prompt) pairs from the cache."""
    images, cached = await services.images.search(body.type, body.prompt)
    return {"success": True, "images": [asdict(image) for image in images], "cached": cached}


@router.get("/cache")
async def cache_stats(services: AppServices = Depends(get_services)):
    cache = services.image_cache
    return {"size": len(cache), "maxSize": cache.max_size, **cache.stats.to_dict()}
