"""Main FastAPI application for Greenlit."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from greenlit import __version__
from greenlit.api.deps import AppServices
from greenlit.api.limits import limiter
from greenlit.api.routers import documents, generation, health, images, sharing, status
from greenlit.core.config import Settings, get_settings
from greenlit.core.env_loader import ensure_env_loaded
from greenlit.core.exceptions import GreenlitError
from greenlit.core.logging_config import LogLevel, get_logger, setup_logging

logger = get_logger("api.main")


async def greenlit_error_handler(request: Request, exc: GreenlitError) -> JSONResponse:
    """Render a GreenlitError as {error, details, type} with its status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a 400 with type "validation"."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": "; ".join(problems), "type": "validation"},
    )


def create_app(settings: Optional[Settings] = None, services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use, defaults to the environment
        services: Pre-built services container, mainly for tests
    """
    if settings is None:
        ensure_env_loaded()
        settings = get_settings()
    setup_logging(LogLevel.from_name(settings.log_level), settings.log_file or None, debug=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Greenlit API ({settings.llm_provider}, {settings.storage_backend} storage)...")
        yield
        logger.info("Shutting down Greenlit API...")

    app = FastAPI(
        title="Greenlit API",
        description="Story bible generation and pre-production pipeline",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.services = services or AppServices.build(settings)

    # Rate limiter
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(GreenlitError, greenlit_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(generation.router, prefix="/api/generate", tags=["generation"])
    app.include_router(status.router, prefix="/api/preproduction-status", tags=["progress"])
    app.include_router(documents.router, prefix="/api", tags=["documents"])
    app.include_router(sharing.router, prefix="/api", tags=["sharing"])
    app.include_router(images.router, prefix="/api/images", tags=["images"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Greenlit API", "version": __version__}

    return app


def start_server(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """Start the FastAPI server."""
    ensure_env_loaded()
    settings = get_settings()
    uvicorn.run(
        "greenlit.api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",
    )


if __name__ == "__main__":
    start_server()
