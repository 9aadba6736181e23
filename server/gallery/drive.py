"""
Remote store abstraction for Google Drive and an in-memory test double.
"""

from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Union

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload, MediaIoBaseUpload
from httplib2 import HttpLib2Error

from gallery.errors import NotFound, RemoteUnavailable
from gallery.models import FOLDER_MIME_TYPE

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]
FILE_FIELDS = "id, name, mimeType, parents, webViewLink, webContentLink, description"

Source = Union[bytes, str, Path]


class DriveClient(Protocol):
    """Defines the operations the catalog and upload flow need from Drive."""

    def list_folders(self, parent_id: Optional[str] = None) -> list[dict]:
        ...

    def list_files_under(self, folder_id: str) -> list[dict]:
        ...

    def create_folder(self, name: str, parent_id: str) -> str:
        ...

    def upload_file(
        self,
        source: Source,
        name: str,
        mime_type: str,
        parent_id: str,
        description: Optional[str] = None,
    ) -> str:
        ...

    def get_file(self, file_id: str) -> dict:
        ...

    def download_file(self, file_id: str) -> bytes:
        ...

    def list_files(self, page_size: int = 10) -> list[dict]:
        ...

    def folder_structure(self) -> dict:
        ...


def _read_source(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source
    with open(source, "rb") as f:
        return f.read()


def build_folder_structure(folders: list[dict], files: list[dict]) -> dict:
    """Group files under the folder that directly contains them."""
    structure = {
        folder["id"]: {"name": folder["name"], "files": []} for folder in folders
    }
    for record in files:
        parents = record.get("parents") or []
        if parents and parents[0] in structure:
            structure[parents[0]]["files"].append(
                {
                    "id": record["id"],
                    "name": record["name"],
                    "link": record.get("webViewLink"),
                }
            )
    return structure


@dataclass
class InMemoryDriveClient:
    """Test double for Drive interactions."""

    base_url: str = "https://drive.example.test"
    records: dict = field(default_factory=dict)
    contents: dict = field(default_factory=dict)
    downloads: list[str] = field(default_factory=list)
    folder_listings: int = 0

    def add_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        folder_id = f"folder-{uuid.uuid4().hex[:12]}"
        self.records[folder_id] = {
            "id": folder_id,
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id] if parent_id else [],
            "webViewLink": f"{self.base_url}/drive/folders/{folder_id}",
        }
        return folder_id

    def add_file(
        self,
        name: str,
        parent_id: str,
        content: bytes = b"",
        mime_type: str = "image/jpeg",
        description: Optional[str] = None,
    ) -> str:
        file_id = f"file-{uuid.uuid4().hex[:12]}"
        record = {
            "id": file_id,
            "name": name,
            "mimeType": mime_type,
            "parents": [parent_id],
            "webViewLink": f"{self.base_url}/file/d/{file_id}/view",
            "webContentLink": f"{self.base_url}/uc?id={file_id}&export=download",
        }
        if description:
            record["description"] = description
        self.records[file_id] = record
        self.contents[file_id] = content
        return file_id

    def list_folders(self, parent_id: Optional[str] = None) -> list[dict]:
        self.folder_listings += 1
        return [
            dict(record)
            for record in self.records.values()
            if record["mimeType"] == FOLDER_MIME_TYPE
            and (parent_id is None or parent_id in record["parents"])
        ]

    def list_files_under(self, folder_id: str) -> list[dict]:
        return [
            dict(record)
            for record in self.records.values()
            if record["mimeType"] != FOLDER_MIME_TYPE and folder_id in record["parents"]
        ]

    def create_folder(self, name: str, parent_id: str) -> str:
        return self.add_folder(name, parent_id)

    def upload_file(
        self,
        source: Source,
        name: str,
        mime_type: str,
        parent_id: str,
        description: Optional[str] = None,
    ) -> str:
        return self.add_file(
            name,
            parent_id,
            content=_read_source(source),
            mime_type=mime_type,
            description=description,
        )

    def get_file(self, file_id: str) -> dict:
        record = self.records.get(file_id)
        if record is None:
            raise NotFound(f"Drive file {file_id} not found")
        return dict(record)

    def download_file(self, file_id: str) -> bytes:
        if file_id not in self.contents:
            raise NotFound(f"Drive file {file_id} not found")
        self.downloads.append(file_id)
        return self.contents[file_id]

    def list_files(self, page_size: int = 10) -> list[dict]:
        return [
            {"id": record["id"], "name": record["name"]}
            for record in list(self.records.values())[:page_size]
        ]

    def folder_structure(self) -> dict:
        records = list(self.records.values())
        folders = [r for r in records if r["mimeType"] == FOLDER_MIME_TYPE]
        files = [r for r in records if r["mimeType"] != FOLDER_MIME_TYPE]
        return build_folder_structure(folders, files)


def load_credentials(
    token_path: str, credentials_path: str, scopes: list[str] = SCOPES
) -> Credentials:
    """
    Load the saved authorized-user token, refreshing it when expired.

    When no usable token exists and a client secrets file is present, runs the
    installed-app consent flow once and stores the resulting token.
    """
    creds = None
    if Path(token_path).exists():
        creds = Credentials.from_authorized_user_file(token_path, scopes)
    if creds and creds.valid:
        return creds

    try:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            if not Path(credentials_path).exists():
                raise RemoteUnavailable(
                    f"No Google token at {token_path} and no client secrets at {credentials_path}"
                )
            flow = InstalledAppFlow.from_client_secrets_file(credentials_path, scopes)
            creds = flow.run_local_server(port=0)
    except GoogleAuthError as e:
        raise RemoteUnavailable(f"Google authorization failed: {e}") from e

    Path(token_path).write_text(creds.to_json(), encoding="utf-8")
    logger.info("Saved Google Drive token to %s", token_path)
    return creds


@dataclass
class GoogleDriveClient:
    """
    Drive v3 client backed by google-api-python-client.
    """

    token_path: str
    credentials_path: str
    scopes: list[str] = field(default_factory=lambda: list(SCOPES))

    def __post_init__(self):
        credentials = load_credentials(self.token_path, self.credentials_path, self.scopes)
        self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except HttpError as e:
            if e.resp.status == 404:
                raise NotFound(f"{action}: not found") from e
            raise RemoteUnavailable(f"{action} failed: {e}") from e
        except (GoogleAuthError, HttpLib2Error, OSError) as e:
            raise RemoteUnavailable(f"{action} failed: {e}") from e

    def _list(self, query: str, fields: str = FILE_FIELDS) -> list[dict]:
        files: list[dict] = []
        page_token = None
        while True:
            response = self._execute(
                self._service.files().list(
                    q=query,
                    fields=f"nextPageToken, files({fields})",
                    orderBy="createdTime",
                    pageSize=100,
                    pageToken=page_token,
                ),
                "List Drive files",
            )
            files.extend(response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return files

    def list_folders(self, parent_id: Optional[str] = None) -> list[dict]:
        query = f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        if parent_id:
            query += f" and '{parent_id}' in parents"
        return self._list(query, fields="id, name, parents, webViewLink")

    def list_files_under(self, folder_id: str) -> list[dict]:
        return self._list(
            f"'{folder_id}' in parents and mimeType != '{FOLDER_MIME_TYPE}' and trashed = false"
        )

    def create_folder(self, name: str, parent_id: str) -> str:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        folder = self._execute(
            self._service.files().create(body=body, fields="id"),
            f"Create folder {name}",
        )
        logger.info("Created Drive folder %s (%s)", name, folder["id"])
        return folder["id"]

    def upload_file(
        self,
        source: Source,
        name: str,
        mime_type: str,
        parent_id: str,
        description: Optional[str] = None,
    ) -> str:
        if isinstance(source, bytes):
            media = MediaIoBaseUpload(io.BytesIO(source), mimetype=mime_type)
        else:
            media = MediaFileUpload(str(source), mimetype=mime_type)
        body = {"name": name, "parents": [parent_id]}
        if description:
            body["description"] = description
        uploaded = self._execute(
            self._service.files().create(body=body, media_body=media, fields="id"),
            f"Upload {name}",
        )
        return uploaded["id"]

    def get_file(self, file_id: str) -> dict:
        return self._execute(
            self._service.files().get(fileId=file_id, fields=FILE_FIELDS),
            f"Get file {file_id}",
        )

    def download_file(self, file_id: str) -> bytes:
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(
            buffer, self._service.files().get_media(fileId=file_id)
        )
        try:
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except HttpError as e:
            if e.resp.status == 404:
                raise NotFound(f"Drive file {file_id} not found") from e
            raise RemoteUnavailable(f"Download {file_id} failed: {e}") from e
        except (GoogleAuthError, HttpLib2Error, OSError) as e:
            raise RemoteUnavailable(f"Download {file_id} failed: {e}") from e
        return buffer.getvalue()

    def list_files(self, page_size: int = 10) -> list[dict]:
        response = self._execute(
            self._service.files().list(
                pageSize=page_size, fields="nextPageToken, files(id, name)"
            ),
            "List Drive files",
        )
        return response.get("files", [])

    def folder_structure(self) -> dict:
        folders = self.list_folders()
        files = self._list(
            f"mimeType != '{FOLDER_MIME_TYPE}' and trashed = false",
            fields="id, name, parents, webViewLink",
        )
        return build_folder_structure(folders, files)
