"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import Request

from gallery.catalog import Catalog
from gallery.config import Settings, get_settings
from gallery.drive import DriveClient, GoogleDriveClient, InMemoryDriveClient
from gallery.image_search import (
    GoogleImageSearchClient,
    ImageSearchClient,
    InMemoryImageSearchClient,
)
from gallery.images import ImageMaterializer

_drive_client: DriveClient | None = None
_image_search_client: ImageSearchClient | None = None


def get_drive_client() -> DriveClient:
    """
    Return a singleton Drive client, in-memory when no Google credentials exist.
    """
    global _drive_client
    if _drive_client:
        return _drive_client

    settings = get_settings()
    has_credentials = (
        Path(settings.google_token_path).exists()
        or Path(settings.google_credentials_path).exists()
    )
    if settings.use_in_memory_backends or not has_credentials:
        _drive_client = InMemoryDriveClient()
    else:
        _drive_client = GoogleDriveClient(
            token_path=settings.google_token_path,
            credentials_path=settings.google_credentials_path,
        )
    return _drive_client


def get_image_search_client() -> ImageSearchClient:
    global _image_search_client
    if _image_search_client:
        return _image_search_client

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.google_search_api_key
        or not settings.google_search_engine_id
    ):
        _image_search_client = InMemoryImageSearchClient()
    else:
        _image_search_client = GoogleImageSearchClient(
            api_key=settings.google_search_api_key,
            engine_id=settings.google_search_engine_id,
        )
    return _image_search_client


def build_catalog(settings: Settings, drive: DriveClient) -> Catalog:
    images = ImageMaterializer(
        settings.image_cache_dir, drive, thumbnail_size=settings.thumbnail_size
    )
    return Catalog(
        drive,
        images,
        recipes_folder_id=settings.recipes_folder_id,
        pictures_folder_id=settings.pictures_folder_id,
    )


# Request-scoped accessors for the objects owned by the app built in create_app.


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_drive(request: Request) -> DriveClient:
    return request.app.state.drive


def get_image_search(request: Request) -> ImageSearchClient:
    return request.app.state.image_search
