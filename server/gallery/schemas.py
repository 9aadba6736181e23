"""
Pydantic schemas for the gallery API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class AssetResponse(BaseModel):
    id: str
    name: str
    mimeType: str
    remoteViewLink: Optional[str] = None
    remoteContentLink: Optional[str] = None
    author: Optional[str] = None


class RecipeResponse(BaseModel):
    folderName: str
    name: str
    author: Optional[str] = None
    coverImage: Optional[AssetResponse] = None
    descriptionImages: list[AssetResponse] = Field(default_factory=list)


class ItemCountResponse(BaseModel):
    itemCount: int
    totalPages: int


class CatalogCounts(BaseModel):
    recipes: int
    pictures: int


class InitializeResponse(BaseModel):
    status: Literal["ok"]
    state: str
    counts: CatalogCounts


class MessageResponse(BaseModel):
    message: str
