"""
HTTP routes for the gallery API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from gallery import paging
from gallery.catalog import Catalog, CatalogKind
from gallery.config import Settings
from gallery.dependencies import get_app_settings, get_catalog, get_drive, get_image_search
from gallery.drive import DriveClient
from gallery.image_search import ImageSearchClient
from gallery.schemas import (
    InitializeResponse,
    ItemCountResponse,
    MessageResponse,
    RecipeResponse,
)
from gallery.uploads import upload_pictures, upload_recipe

logger = logging.getLogger(__name__)

router = APIRouter()
public_router = APIRouter()

_FALSE_FLAGS = {"0", "false", "no", "off"}


def _flag(value: Optional[str]) -> bool:
    """A bare ``?slideshow`` counts as set."""
    if value is None:
        return False
    return value.strip().lower() not in _FALSE_FLAGS


@public_router.get("/")
def usage():
    return {
        "status": "ok",
        "message": (
            "Use /api/items?type=recipes|pictures&page=N for paged items, "
            "/api/itemCount for counts, /api/recipes?name= for one recipe, "
            "/api/folders and /api/files for the raw Drive tree."
        ),
    }


@public_router.get("/image/{image_name}")
def get_image(
    image_name: str,
    variant: str = Query("full", alias="type"),
    catalog: Catalog = Depends(get_catalog),
):
    return FileResponse(catalog.images.local_path(image_name, variant))


@router.get("/items")
def list_items(
    kind: Optional[str] = Query(None, alias="type"),
    page: Optional[str] = Query(None),
    slideshow: Optional[str] = Query(None),
    catalog: Catalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
):
    items = paging.list_items(
        catalog,
        kind,
        page,
        _flag(slideshow),
        page_size=settings.page_size,
        slideshow_size=settings.slideshow_size,
        policy=settings.slideshow_policy,
    )
    return [item.as_dict() for item in items]


@router.get("/itemCount", response_model=ItemCountResponse)
def item_count(
    kind: Optional[str] = Query(None, alias="type"),
    catalog: Catalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
):
    count, pages = paging.item_count(catalog, kind, page_size=settings.page_size)
    return ItemCountResponse(itemCount=count, totalPages=pages)


@router.get("/recipes")
def get_recipes(
    name: Optional[str] = Query(None),
    catalog: Catalog = Depends(get_catalog),
):
    """One recipe by folder name, or every recipe when no name is given."""
    catalog.ensure_initialized()
    if name is None:
        return [recipe.as_dict() for recipe in catalog.snapshot(CatalogKind.RECIPES)]
    return RecipeResponse(**catalog.find_recipe(name).as_dict())


@router.get("/pictures")
def get_pictures(catalog: Catalog = Depends(get_catalog)):
    catalog.ensure_initialized()
    return [picture.as_dict() for picture in catalog.snapshot(CatalogKind.PICTURES)]


@router.get("/initialize", response_model=InitializeResponse)
def initialize(catalog: Catalog = Depends(get_catalog)):
    catalog.initialize()
    return InitializeResponse(
        status="ok", state=catalog.state.value, counts=catalog.counts()
    )


@router.post("/upload", response_model=MessageResponse)
def upload(
    kind: Optional[str] = Query(None, alias="type"),
    files: Optional[list[UploadFile]] = File(None),
    recipe_name: Optional[str] = Form(None, alias="recipeName"),
    author_name: Optional[str] = Form(None, alias="authorName"),
    catalog: Catalog = Depends(get_catalog),
    drive: DriveClient = Depends(get_drive),
    search: ImageSearchClient = Depends(get_image_search),
    settings: Settings = Depends(get_app_settings),
):
    kind = CatalogKind.parse(kind)
    files = files or []
    if kind is CatalogKind.RECIPES:
        recipe = upload_recipe(
            catalog,
            drive,
            search,
            recipe_name,
            author_name,
            files,
            settings.upload_dir,
        )
        return MessageResponse(message=f"Recipe {recipe.folder_name} uploaded successfully")

    pictures = upload_pictures(
        catalog, drive, files, settings.upload_dir, author_name=author_name
    )
    return MessageResponse(message=f"{len(pictures)} pictures uploaded successfully")


@router.get("/folders")
def list_folders(drive: DriveClient = Depends(get_drive)):
    return drive.folder_structure()


@router.get("/files")
def list_files(drive: DriveClient = Depends(get_drive)):
    return drive.list_files()
