"""
FastAPI application entry point for the gallery backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gallery.config import Settings, get_settings
from gallery.dependencies import build_catalog, get_drive_client, get_image_search_client
from gallery.drive import DriveClient
from gallery.errors import GalleryError
from gallery.image_search import ImageSearchClient
from gallery.routes import public_router, router

logger = logging.getLogger(__name__)


async def _gallery_error_handler(request: Request, exc: GalleryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


def create_app(
    settings: Settings | None = None,
    drive: DriveClient | None = None,
    image_search: ImageSearchClient | None = None,
) -> FastAPI:
    """
    Build the app and the catalog it owns.

    Collaborators default to the singletons chosen from settings; tests pass
    in-memory doubles instead.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    drive = drive or get_drive_client()

    app = FastAPI(title="Recipe Gallery Backend", version="0.1.0")
    app.state.settings = settings
    app.state.drive = drive
    app.state.image_search = image_search or get_image_search_client()
    app.state.catalog = build_catalog(settings, drive)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GalleryError, _gallery_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(public_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


def run() -> None:
    import uvicorn

    uvicorn.run("gallery.app:create_app", factory=True, host="0.0.0.0", port=3001)
