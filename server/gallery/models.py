"""
Catalog records mirrored from Google Drive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

_DESCRIPTION_INDEX = re.compile(r"_(\d+)$")


def cache_key(name: str) -> str:
    """Return the local cache directory key for a file name.

    The key is everything before the first ``.``, so ``"Soup-Ann.v2.jpg"``
    maps to ``"Soup-Ann"``.
    """
    return name.split(".", 1)[0]


def _stem(name: str) -> str:
    """Drop the extension, keeping any other dots in the name."""
    return name.rsplit(".", 1)[0]


def recipe_key(recipe_name: str, author_name: str) -> str:
    return f"{recipe_name.strip()}-{author_name.strip()}"


@dataclass(frozen=True)
class Asset:
    id: str
    name: str
    mime_type: str
    remote_view_link: Optional[str] = None
    remote_content_link: Optional[str] = None
    author: Optional[str] = None

    @classmethod
    def from_drive_file(cls, record: dict) -> "Asset":
        """Build an asset from a Drive ``files`` resource."""
        return cls(
            id=record["id"],
            name=record["name"],
            mime_type=record.get("mimeType", "application/octet-stream"),
            remote_view_link=record.get("webViewLink"),
            remote_content_link=record.get("webContentLink"),
            author=record.get("description") or None,
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "mimeType": self.mime_type,
            "remoteViewLink": self.remote_view_link,
            "remoteContentLink": self.remote_content_link,
            "author": self.author,
        }


@dataclass(frozen=True)
class Recipe:
    folder_name: str
    cover_image: Optional[Asset] = None
    description_images: tuple[Asset, ...] = field(default_factory=tuple)

    @classmethod
    def from_folder(cls, folder_name: str, files: list[dict]) -> "Recipe":
        """Build a recipe from the files found in its Drive folder.

        The cover is the file named after the folder itself; every other file
        is a description image, ordered by its ``_<n>`` upload index.
        """
        cover: Optional[Asset] = None
        descriptions: list[Asset] = []
        for record in files:
            if record.get("mimeType") == FOLDER_MIME_TYPE:
                continue
            asset = Asset.from_drive_file(record)
            if cover is None and _stem(asset.name) == folder_name:
                cover = asset
            else:
                descriptions.append(asset)
        descriptions.sort(key=_description_order)
        return cls(
            folder_name=folder_name,
            cover_image=cover,
            description_images=tuple(descriptions),
        )

    @property
    def name(self) -> str:
        return self.folder_name.rsplit("-", 1)[0]

    @property
    def author(self) -> Optional[str]:
        if "-" not in self.folder_name:
            return None
        return self.folder_name.rsplit("-", 1)[1]

    @property
    def assets(self) -> list[Asset]:
        images = list(self.description_images)
        if self.cover_image is not None:
            images.insert(0, self.cover_image)
        return images

    def as_dict(self) -> dict:
        return {
            "folderName": self.folder_name,
            "name": self.name,
            "author": self.author,
            "coverImage": self.cover_image.as_dict() if self.cover_image else None,
            "descriptionImages": [image.as_dict() for image in self.description_images],
        }


def _description_order(asset: Asset) -> tuple[int, str]:
    match = _DESCRIPTION_INDEX.search(_stem(asset.name))
    index = int(match.group(1)) if match else 0
    return index, asset.name
