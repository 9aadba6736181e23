"""
Configuration and settings for the gallery backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service.

    Every field can be overridden with a ``GALLERY_``-prefixed environment
    variable or through a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GALLERY_",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Google Drive folders mirrored by the catalog
    recipes_folder_id: str = Field(default="recipes-root")
    pictures_folder_id: str = Field(default="pictures-root")

    # Google OAuth (authorized-user token + installed-app client secrets)
    google_token_path: str = Field(default="token.json")
    google_credentials_path: str = Field(default="credentials.json")

    # Google Custom Search, used to find a stock cover for new recipes
    google_search_api_key: Optional[str] = Field(default=None)
    google_search_engine_id: Optional[str] = Field(default=None)

    # Local image cache and temporary uploads
    image_cache_dir: str = Field(default="data/images")
    upload_dir: str = Field(default="data/uploads")
    thumbnail_size: int = Field(default=200, ge=1)

    # Pagination
    page_size: int = Field(default=12, ge=1)
    slideshow_size: int = Field(default=5, ge=1)
    slideshow_policy: Literal["head", "paged"] = Field(default="head")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
