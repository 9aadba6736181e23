"""
Upload flow: stage multipart files on disk, push them to Drive, update the catalog.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

from fastapi import UploadFile

from gallery.catalog import Catalog
from gallery.drive import DriveClient
from gallery.errors import InvalidArgument, LocalIOFailure, NotFound
from gallery.image_search import ImageSearchClient, SearchImage
from gallery.models import Asset, Recipe, recipe_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedFile:
    path: Path
    filename: str
    mime_type: str

    @property
    def suffix(self) -> str:
        return Path(self.filename).suffix


def _mime_type(upload: UploadFile) -> str:
    if upload.content_type and upload.content_type != "application/octet-stream":
        return upload.content_type
    guessed, _ = mimetypes.guess_type(upload.filename or "")
    return guessed or "application/octet-stream"


def picture_name(filename: str) -> str:
    """Prefix a short random token so pictures uploaded under the same name stay apart."""
    return f"{uuid.uuid4().hex[:8]}_{filename}"


def _remove(staged: list[StagedFile]) -> None:
    for item in staged:
        try:
            item.path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not remove temporary upload %s", item.path)


@contextmanager
def staged_uploads(files: Sequence[UploadFile], upload_dir: str | Path) -> Iterator[list[StagedFile]]:
    """
    Copy uploaded files into temporary files that live for one request.

    Every temporary file is removed when the block exits, whether the upload
    succeeded or failed.
    """
    staged: list[StagedFile] = []
    try:
        try:
            Path(upload_dir).mkdir(parents=True, exist_ok=True)
            for upload in files:
                filename = Path(upload.filename or "upload").name
                with tempfile.NamedTemporaryFile(
                    dir=upload_dir, suffix=Path(filename).suffix, delete=False
                ) as temp_file:
                    staged.append(StagedFile(Path(temp_file.name), filename, _mime_type(upload)))
                    shutil.copyfileobj(upload.file, temp_file)
        except OSError as e:
            raise LocalIOFailure(f"Could not stage uploaded files: {e}") from e
        yield staged
    finally:
        _remove(staged)


def _find_cover(search: ImageSearchClient, recipe_name: str) -> Optional[SearchImage]:
    try:
        return search.search(f"{recipe_name} recipe image")
    except NotFound:
        logger.warning("No stock cover found for %s, uploading without one", recipe_name)
        return None


def upload_recipe(
    catalog: Catalog,
    drive: DriveClient,
    search: ImageSearchClient,
    recipe_name: Optional[str],
    author_name: Optional[str],
    files: Sequence[UploadFile],
    upload_dir: str | Path,
) -> Recipe:
    """
    Create a recipe folder in Drive holding a stock cover and the uploaded images.

    The cover is stored as ``<key><ext>`` and the uploads as ``<key>_<n><ext>``
    so a later scan rebuilds the same recipe.

    Raises:
        InvalidArgument: If a name is missing or malformed.
        DuplicateItem: If the recipe already exists.
        RemoteUnavailable: If Drive or the image search fails.
    """
    recipe_name = (recipe_name or "").strip()
    author_name = (author_name or "").strip()
    if not recipe_name or not author_name:
        raise InvalidArgument("recipeName and authorName are required")
    if "-" in author_name or "/" in recipe_name:
        raise InvalidArgument("authorName may not contain '-' and recipeName may not contain '/'")
    folder_key = recipe_key(recipe_name, author_name)

    # Duplicate detection needs the existing recipes in memory.
    catalog.ensure_initialized()
    cover = _find_cover(search, recipe_name)

    with staged_uploads(files, upload_dir) as staged, catalog.reserve_recipe(folder_key) as folder_id:
        if cover is not None:
            drive.upload_file(
                cover.content,
                f"{folder_key}{cover.extension}",
                cover.mime_type,
                folder_id,
                description=author_name,
            )
        for index, item in enumerate(staged, start=1):
            drive.upload_file(
                item.path,
                f"{folder_key}_{index}{item.suffix}",
                item.mime_type,
                folder_id,
                description=author_name,
            )
        return catalog.append_recipe(folder_key, folder_id)


def upload_pictures(
    catalog: Catalog,
    drive: DriveClient,
    files: Sequence[UploadFile],
    upload_dir: str | Path,
    author_name: Optional[str] = None,
) -> list[Asset]:
    """Upload pictures into the Pictures folder under unique names and add them to the catalog."""
    if not files:
        raise InvalidArgument("No files uploaded")
    author_name = (author_name or "").strip() or None
    # A scan after the append would otherwise push the new pictures to the end.
    catalog.ensure_initialized()

    with staged_uploads(files, upload_dir) as staged:
        file_ids = [
            drive.upload_file(
                item.path,
                picture_name(item.filename),
                item.mime_type,
                catalog.pictures_folder_id,
                description=author_name,
            )
            for item in staged
        ]
    return catalog.append_pictures(file_ids)
