"""
In-memory catalog of recipes and pictures mirrored from Google Drive.
"""

from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from gallery.drive import DriveClient
from gallery.errors import DuplicateItem, InvalidArgument, NotFound
from gallery.images import ImageMaterializer
from gallery.models import Asset, Recipe

logger = logging.getLogger(__name__)


class CatalogKind(str, enum.Enum):
    RECIPES = "recipes"
    PICTURES = "pictures"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CatalogKind":
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgument(
                f"Invalid type {value!r}, expected 'recipes' or 'pictures'"
            ) from None


class CatalogState(enum.Enum):
    EMPTY = "empty"
    INITIALIZING = "initializing"
    POPULATED = "populated"


class Catalog:
    """
    Process-wide view of the Recipes and Pictures folders.

    Both collections start empty and are filled by one full scan. After that
    they only grow: uploads prepend new items so the newest come first, and
    nothing is ever removed or edited in place. Readers get copies through
    ``snapshot``.
    """

    def __init__(
        self,
        drive: DriveClient,
        images: ImageMaterializer,
        recipes_folder_id: str,
        pictures_folder_id: str,
    ):
        self.drive = drive
        self.images = images
        self.recipes_folder_id = recipes_folder_id
        self.pictures_folder_id = pictures_folder_id
        self._recipes: list[Recipe] = []
        self._pictures: list[Asset] = []
        self._state = CatalogState.EMPTY
        self._reserved: set[str] = set()
        # Guards the collections, the state and the reservations.
        self._lock = threading.Lock()
        # Serializes full scans; appends take it too so a scan never drops them.
        self._init_lock = threading.Lock()
        self._create_lock = threading.Lock()

    @property
    def state(self) -> CatalogState:
        return self._state

    def counts(self) -> dict:
        with self._lock:
            return {"recipes": len(self._recipes), "pictures": len(self._pictures)}

    def initialize(self) -> bool:
        """
        Scan Drive and replace both collections, then cache every image.

        Returns False without touching Drive when the catalog is already
        populated. A failed scan is logged and leaves the catalog empty so the
        next request retries it.

        Images are cached after the scan lock is released, so appends made
        while the cache fills do not wait for it.
        """
        with self._init_lock:
            if self._state is CatalogState.POPULATED:
                return False
            self._state = CatalogState.INITIALIZING
            logger.info("Initializing catalog from Drive")
            try:
                recipes = self._scan_recipes()
                pictures = [
                    Asset.from_drive_file(record)
                    for record in self.drive.list_files_under(self.pictures_folder_id)
                ]
            except Exception:
                logger.exception("Catalog scan failed, leaving catalog empty")
                with self._lock:
                    self._recipes = []
                    self._pictures = []
                    self._state = CatalogState.EMPTY
                return False

            with self._lock:
                self._recipes = recipes
                self._pictures = pictures
                self._state = CatalogState.POPULATED

        assets = [asset for recipe in recipes for asset in recipe.assets] + pictures
        ready = self.images.materialize_all(assets)
        logger.info(
            "Catalog populated: %d recipes, %d pictures, %d/%d images cached",
            len(recipes),
            len(pictures),
            ready,
            len(assets),
        )
        return True

    def ensure_initialized(self) -> None:
        if self._state is CatalogState.EMPTY:
            self.initialize()

    def _scan_recipes(self) -> list[Recipe]:
        recipes = []
        for folder in self.drive.list_folders(self.recipes_folder_id):
            files = self.drive.list_files_under(folder["id"])
            recipes.append(Recipe.from_folder(folder["name"], files))
        return recipes

    def _find_recipe_folder_id(self, folder_key: str) -> str:
        for folder in self.drive.list_folders(self.recipes_folder_id):
            if folder["name"] == folder_key:
                return folder["id"]
        raise NotFound(f"Recipe folder {folder_key} not found")

    def append_recipe(self, folder_key: str, folder_id: Optional[str] = None) -> Recipe:
        """
        Fetch one recipe folder, cache its images and put it first.

        Args:
            folder_key (str): The recipe folder name, ``<name>-<author>``.
            folder_id (str): The Drive folder id when the caller already has
                it; otherwise the folder is looked up by name.

        Raises:
            NotFound: If no such folder exists under the Recipes root.
            RemoteUnavailable: If Drive fails.
        """
        if folder_id is None:
            folder_id = self._find_recipe_folder_id(folder_key)
        recipe = Recipe.from_folder(folder_key, self.drive.list_files_under(folder_id))
        self.images.materialize_all(recipe.assets)

        with self._init_lock, self._lock:
            # A scan that ran meanwhile may already have picked the folder up.
            if not any(r.folder_name == folder_key for r in self._recipes):
                self._recipes.insert(0, recipe)
        logger.info("Added recipe %s", folder_key)
        return recipe

    def append_pictures(self, remote_ids: list[str]) -> list[Asset]:
        """Fetch the given Drive files, cache them and put them first, in order."""
        pictures = [Asset.from_drive_file(self.drive.get_file(file_id)) for file_id in remote_ids]
        self.images.materialize_all(pictures)

        with self._init_lock, self._lock:
            known = {picture.id for picture in self._pictures}
            self._pictures[0:0] = [p for p in pictures if p.id not in known]
        logger.info("Added %d pictures", len(pictures))
        return pictures

    def find_recipe(self, folder_key: str) -> Recipe:
        with self._lock:
            for recipe in self._recipes:
                if recipe.folder_name == folder_key:
                    return recipe
        raise NotFound(f"Recipe {folder_key} not found")

    def snapshot(self, kind: CatalogKind | str) -> list:
        kind = CatalogKind.parse(kind)
        with self._lock:
            if kind is CatalogKind.RECIPES:
                return list(self._recipes)
            return list(self._pictures)

    @contextmanager
    def reserve_recipe(self, folder_key: str) -> Iterator[str]:
        """
        Create the Drive folder for a new recipe, or reject a duplicate name.

        The check and the folder creation happen under one lock, and the name
        stays reserved until the block exits, so two uploads of the same
        recipe cannot both get a folder.

        Yields:
            str: The id of the newly created Drive folder.

        Raises:
            DuplicateItem: If the recipe exists or is being uploaded.
        """
        with self._create_lock:
            with self._lock:
                taken = folder_key in self._reserved or any(
                    r.folder_name == folder_key for r in self._recipes
                )
            if taken:
                raise DuplicateItem(f"Recipe {folder_key} already exists")
            folder_id = self.drive.create_folder(folder_key, self.recipes_folder_id)
            with self._lock:
                self._reserved.add(folder_key)
        try:
            yield folder_id
        finally:
            with self._lock:
                self._reserved.discard(folder_key)
