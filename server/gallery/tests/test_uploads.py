import io
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from fastapi import UploadFile
from starlette.datastructures import Headers

import gallery_testing_utils
from gallery.catalog import Catalog
from gallery.errors import DuplicateItem, InvalidArgument, RemoteUnavailable
from gallery.image_search import InMemoryImageSearchClient, SearchImage
from gallery.images import ImageMaterializer
from gallery.uploads import staged_uploads, upload_pictures, upload_recipe


def make_upload(filename, content=None, content_type="image/jpeg"):
    return UploadFile(
        file=io.BytesIO(content if content is not None else gallery_testing_utils.make_image_bytes()),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class UploadTests(unittest.TestCase):
    def setUp(self):
        self.work_dir = tempfile.mkdtemp()
        self.upload_dir = os.path.join(self.work_dir, "uploads")
        self.tree = gallery_testing_utils.make_drive_tree()
        self.drive = self.tree.drive
        self.catalog = Catalog(
            self.drive,
            ImageMaterializer(os.path.join(self.work_dir, "images"), self.drive),
            recipes_folder_id=self.tree.recipes_root,
            pictures_folder_id=self.tree.pictures_root,
        )
        self.search = InMemoryImageSearchClient(
            result=SearchImage(
                content=gallery_testing_utils.make_image_bytes(),
                filename="stock-pie.jpg",
                mime_type="image/jpeg",
            )
        )

    def tearDown(self):
        shutil.rmtree(self.work_dir, ignore_errors=True)

    def leftover_uploads(self):
        if not os.path.isdir(self.upload_dir):
            return []
        return os.listdir(self.upload_dir)

    def test_staged_uploads_removed_after_success(self):
        with staged_uploads([make_upload("a.jpg", b"abc")], self.upload_dir) as staged:
            self.assertEqual(staged[0].path.read_bytes(), b"abc")
            self.assertEqual(staged[0].filename, "a.jpg")
            self.assertEqual(staged[0].suffix, ".jpg")
        self.assertEqual(self.leftover_uploads(), [])

    def test_staged_uploads_removed_after_failure(self):
        with self.assertRaises(RemoteUnavailable):
            with staged_uploads([make_upload("a.jpg"), make_upload("b.png")], self.upload_dir):
                raise RemoteUnavailable("drive down")
        self.assertEqual(self.leftover_uploads(), [])

    def test_staged_upload_guesses_missing_content_type(self):
        upload = make_upload("photo.png", b"png", content_type="application/octet-stream")
        with staged_uploads([upload], self.upload_dir) as staged:
            self.assertEqual(staged[0].mime_type, "image/png")

    def test_upload_recipe(self):
        self.tree.add_recipe("Soup-Ann")

        recipe = upload_recipe(
            self.catalog,
            self.drive,
            self.search,
            "Pie",
            "Cy",
            [make_upload("crust.jpg"), make_upload("filling.png", content_type="image/png")],
            self.upload_dir,
        )

        self.assertEqual(recipe.folder_name, "Pie-Cy")
        self.assertEqual(recipe.cover_image.name, "Pie-Cy.jpg")
        self.assertEqual(recipe.cover_image.author, "Cy")
        self.assertEqual(
            [a.name for a in recipe.description_images], ["Pie-Cy_1.jpg", "Pie-Cy_2.png"]
        )
        self.assertEqual(self.search.queries, ["Pie recipe image"])
        self.assertEqual(
            [r.folder_name for r in self.catalog.snapshot("recipes")], ["Pie-Cy", "Soup-Ann"]
        )
        self.assertTrue(self.catalog.images.is_cached(recipe.cover_image))
        self.assertEqual(self.leftover_uploads(), [])

    def test_upload_recipe_without_stock_cover(self):
        search = InMemoryImageSearchClient()
        with self.assertLogs("gallery.uploads", level="WARNING"):
            recipe = upload_recipe(
                self.catalog, self.drive, search, "Pie", "Cy", [make_upload("a.jpg")], self.upload_dir
            )
        self.assertIsNone(recipe.cover_image)
        self.assertEqual(len(recipe.description_images), 1)

    def test_upload_recipe_rejects_duplicate(self):
        self.tree.add_recipe("Soup-Ann")
        folders_before = len(self.drive.list_folders())

        with self.assertRaises(DuplicateItem):
            upload_recipe(
                self.catalog, self.drive, self.search, "Soup", "Ann", [make_upload("a.jpg")], self.upload_dir
            )
        self.assertEqual(len(self.drive.list_folders()), folders_before)
        self.assertEqual(self.leftover_uploads(), [])

    def test_upload_recipe_requires_names(self):
        with self.assertRaises(InvalidArgument):
            upload_recipe(self.catalog, self.drive, self.search, "Pie", " ", [], self.upload_dir)
        with self.assertRaises(InvalidArgument):
            upload_recipe(self.catalog, self.drive, self.search, None, "Cy", [], self.upload_dir)
        self.assertEqual(self.search.queries, [])

    def test_upload_recipe_drive_failure_cleans_up(self):
        with patch.object(self.drive, "upload_file", side_effect=RemoteUnavailable("quota")):
            with self.assertRaises(RemoteUnavailable):
                upload_recipe(
                    self.catalog, self.drive, self.search, "Pie", "Cy", [make_upload("a.jpg")], self.upload_dir
                )
        self.assertEqual(self.leftover_uploads(), [])
        self.assertEqual(self.catalog.snapshot("recipes"), [])

    def test_upload_pictures(self):
        self.tree.add_picture("old.jpg")
        self.catalog.initialize()

        pictures = upload_pictures(
            self.catalog,
            self.drive,
            [make_upload("one.jpg"), make_upload("two.jpg")],
            self.upload_dir,
            author_name="Ann",
        )

        self.assertRegex(pictures[0].name, r"^[0-9a-f]{8}_one\.jpg$")
        self.assertRegex(pictures[1].name, r"^[0-9a-f]{8}_two\.jpg$")
        self.assertEqual([p.author for p in pictures], ["Ann", "Ann"])
        self.assertEqual(
            [p.name for p in self.catalog.snapshot("pictures")],
            [pictures[0].name, pictures[1].name, "old.jpg"],
        )
        self.assertEqual(self.leftover_uploads(), [])

    def test_upload_pictures_with_same_filename_are_cached_apart(self):
        first_content = gallery_testing_utils.make_image_bytes(colors=("red", "red"))
        second_content = gallery_testing_utils.make_image_bytes(colors=("blue", "blue"))

        first = upload_pictures(
            self.catalog, self.drive, [make_upload("image.jpg", first_content)], self.upload_dir
        )[0]
        second = upload_pictures(
            self.catalog, self.drive, [make_upload("image.jpg", second_content)], self.upload_dir
        )[0]

        self.assertNotEqual(first.name, second.name)
        images = self.catalog.images
        self.assertNotEqual(images.full_path(first.name), images.full_path(second.name))
        self.assertEqual(images.full_path(first.name).read_bytes(), first_content)
        self.assertEqual(images.full_path(second.name).read_bytes(), second_content)
        self.assertEqual(self.catalog.counts()["pictures"], 2)

    def test_upload_recipe_with_dotted_name_keeps_its_cover(self):
        recipe = upload_recipe(
            self.catalog,
            self.drive,
            self.search,
            "Mrs. Smith Pie",
            "Ann",
            [make_upload("crust.jpg")],
            self.upload_dir,
        )

        self.assertEqual(recipe.cover_image.name, "Mrs. Smith Pie-Ann.jpg")
        self.assertEqual(
            [a.name for a in recipe.description_images], ["Mrs. Smith Pie-Ann_1.jpg"]
        )
        self.assertTrue(self.catalog.images.is_cached(recipe.cover_image))

        # A later scan of the same Drive folder finds the same cover.
        rescanned = Catalog(
            self.drive,
            self.catalog.images,
            recipes_folder_id=self.tree.recipes_root,
            pictures_folder_id=self.tree.pictures_root,
        )
        rescanned.initialize()
        self.assertEqual(
            rescanned.find_recipe("Mrs. Smith Pie-Ann").cover_image.name, "Mrs. Smith Pie-Ann.jpg"
        )

    def test_upload_pictures_requires_files(self):
        with self.assertRaises(InvalidArgument):
            upload_pictures(self.catalog, self.drive, [], self.upload_dir)


if __name__ == "__main__":
    unittest.main()
