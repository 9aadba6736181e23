import io
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

from PIL import Image

from gallery.config import Settings
from gallery.drive import GoogleDriveClient, InMemoryDriveClient

EXIF_ORIENTATION = 0x0112


def make_image_bytes(
    size=(64, 32), fmt="JPEG", colors=("red", "blue"), orientation=None
) -> bytes:
    """An image split vertically: left half colors[0], right half colors[1]."""
    width, height = size
    image = Image.new("RGB", size, colors[0])
    image.paste(Image.new("RGB", (width - width // 2, height), colors[1]), (width // 2, 0))
    buffer = io.BytesIO()
    if orientation is not None:
        exif = image.getexif()
        exif[EXIF_ORIENTATION] = orientation
        image.save(buffer, format=fmt, exif=exif.tobytes())
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


@dataclass
class DriveTree:
    drive: InMemoryDriveClient
    recipes_root: str
    pictures_root: str

    def add_recipe(self, folder_name: str, descriptions: int = 1, cover: bool = True) -> str:
        folder_id = self.drive.add_folder(folder_name, self.recipes_root)
        if cover:
            self.drive.add_file(f"{folder_name}.jpg", folder_id, make_image_bytes())
        for index in range(1, descriptions + 1):
            self.drive.add_file(f"{folder_name}_{index}.jpg", folder_id, make_image_bytes())
        return folder_id

    def add_picture(self, name: str, content: bytes | None = None) -> str:
        return self.drive.add_file(
            name, self.pictures_root, content if content is not None else make_image_bytes()
        )


def make_drive_tree() -> DriveTree:
    drive = InMemoryDriveClient()
    return DriveTree(
        drive=drive,
        recipes_root=drive.add_folder("Recipes"),
        pictures_root=drive.add_folder("Pictures"),
    )


def make_settings(tree: DriveTree, cache_dir: str, **overrides) -> Settings:
    values = {
        "recipes_folder_id": tree.recipes_root,
        "pictures_folder_id": tree.pictures_root,
        "image_cache_dir": f"{cache_dir}/images",
        "upload_dir": f"{cache_dir}/uploads",
        "use_in_memory_backends": True,
    }
    values.update(overrides)
    return Settings(**values)


def make_google_drive_client(service=None) -> GoogleDriveClient:
    """A GoogleDriveClient wired to a stand-in Drive service, skipping OAuth."""
    service = service if service is not None else MagicMock()
    with patch("gallery.drive.load_credentials"), patch("gallery.drive.build", return_value=service):
        return GoogleDriveClient(token_path="token.json", credentials_path="credentials.json")
