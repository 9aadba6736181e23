"""
Local full-size and thumbnail cache for Drive images.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from PIL import Image, ImageOps

from gallery.drive import DriveClient
from gallery.errors import GalleryError, InvalidArgument, LocalIOFailure, NotFound
from gallery.models import Asset, cache_key

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = "thumbnail_"
VARIANTS = ("full", "thumb")


def _write_atomic(path: Path, data: bytes) -> None:
    partial = path.with_name(path.name + ".part")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        partial.write_bytes(data)
        os.replace(partial, path)
    except OSError as e:
        raise LocalIOFailure(f"Could not write {path}: {e}") from e


class ImageMaterializer:
    """
    Ensures every asset has a local original and a fixed-size thumbnail.

    Each asset gets a directory named by its cache key holding ``<name>`` and
    ``thumbnail_<name>``. A file that already exists is never fetched or
    derived again, so repeat calls are cheap.
    """

    def __init__(self, cache_dir: str | Path, drive: DriveClient, thumbnail_size: int = 200):
        self.cache_dir = Path(cache_dir)
        self.drive = drive
        self.thumbnail_size = thumbnail_size

    def full_path(self, name: str) -> Path:
        return self.cache_dir / cache_key(name) / name

    def thumbnail_path(self, name: str) -> Path:
        return self.cache_dir / cache_key(name) / f"{THUMBNAIL_PREFIX}{name}"

    def is_cached(self, asset: Asset) -> bool:
        return self.full_path(asset.name).exists() and self.thumbnail_path(asset.name).exists()

    def materialize(self, asset: Asset) -> bool:
        """
        Downloads and thumbnails one asset unless it is already cached.

        Args:
            asset (Asset): The Drive asset to cache.

        Returns:
            bool: True when both local files exist afterwards. Download, decode
            and write failures are logged and reported as False.
        """
        full_path = self.full_path(asset.name)
        thumbnail_path = self.thumbnail_path(asset.name)
        if full_path.exists() and thumbnail_path.exists():
            return True

        try:
            if not full_path.exists():
                _write_atomic(full_path, self.drive.download_file(asset.id))
                logger.debug("Cached %s at %s", asset.name, full_path)
            if not thumbnail_path.exists():
                self._write_thumbnail(full_path, thumbnail_path)
        except (GalleryError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Could not materialize image %s (%s): %s", asset.name, asset.id, e)
            return False
        return True

    def materialize_all(self, assets: Iterable[Asset]) -> int:
        """Materializes assets one at a time and returns how many are ready."""
        ready = 0
        for asset in assets:
            if self.materialize(asset):
                ready += 1
        return ready

    def _write_thumbnail(self, source_path: Path, thumbnail_path: Path) -> None:
        size = (self.thumbnail_size, self.thumbnail_size)
        with Image.open(source_path) as source:
            image_format = source.format
            oriented = ImageOps.exif_transpose(source)
            thumbnail = ImageOps.fit(oriented, size)
        if image_format == "JPEG" and thumbnail.mode not in ("RGB", "L"):
            thumbnail = thumbnail.convert("RGB")
        partial = thumbnail_path.with_name(thumbnail_path.name + ".part")
        try:
            thumbnail.save(partial, format=image_format)
            os.replace(partial, thumbnail_path)
        except OSError as e:
            raise LocalIOFailure(f"Could not write {thumbnail_path}: {e}") from e

    def local_path(self, image_name: str, variant: str = "full") -> Path:
        """
        Returns the cached file for an image name.

        Raises:
            InvalidArgument: For an unknown variant or a name with path parts.
            NotFound: If the file has not been materialized.
        """
        if variant not in VARIANTS:
            raise InvalidArgument(f"Invalid image type {variant!r}, expected full or thumb")
        if not image_name or Path(image_name).name != image_name or image_name.startswith("."):
            raise InvalidArgument(f"Invalid image name {image_name!r}")

        if variant == "full":
            path = self.full_path(image_name)
        else:
            path = self.thumbnail_path(image_name)
        if not path.is_file():
            raise NotFound(f"Image {image_name} not found")
        return path
