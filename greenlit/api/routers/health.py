"""Health router for Greenlit API."""

from fastapi import APIRouter, Depends

from greenlit import __version__
from greenlit.api.deps import AppServices, get_services

router = APIRouter()


@router.get("/api/health")
async def health_check(services: AppServices = Depends(get_services)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "llmProvider": services.settings.llm_provider,
        "storage": services.settings.storage_backend,
        "activeRuns": len(services.hub),
    }
