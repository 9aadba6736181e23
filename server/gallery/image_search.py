"""
Stock image lookup used to give newly uploaded recipes a cover photo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional, Protocol
from urllib.parse import urlparse

import requests

from gallery.errors import NotFound, RemoteUnavailable

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


@dataclass(frozen=True)
class SearchImage:
    content: bytes
    filename: str
    mime_type: str

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename).suffix


class ImageSearchClient(Protocol):
    """Finds a single image for a free-text query."""

    def search(self, query: str) -> SearchImage:
        ...


def extension_for(mime_type: str) -> str:
    """
    Maps a content type such as ``image/jpeg`` to a file extension.

    Args:
        mime_type (str): The Content-Type header of the downloaded image.

    Returns:
        str: The extension without a leading dot, ``jpeg`` normalized to ``jpg``.
    """
    subtype = mime_type.split(";", 1)[0].split("/")[-1].strip().lower() or "jpg"
    return "jpg" if subtype == "jpeg" else subtype


@dataclass
class GoogleImageSearchClient:
    """Google Custom Search JSON API, restricted to image results."""

    api_key: str
    engine_id: str

    def search(self, query: str) -> SearchImage:
        """
        Returns the first image result for the query, downloaded.

        Raises:
            NotFound: If the search returned no images.
            RemoteUnavailable: If the search or the image download failed.
        """
        try:
            response = requests.get(
                CUSTOM_SEARCH_URL,
                params={
                    "key": self.api_key,
                    "cx": self.engine_id,
                    "searchType": "image",
                    "q": query,
                    "num": 1,
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Image search failed for {query!r}: {e}") from e

        try:
            items = response.json().get("items") or []
            image_url = items[0]["link"] if items else None
        except (ValueError, AttributeError, LookupError, TypeError) as e:
            raise RemoteUnavailable(f"Unexpected image search response for {query!r}: {e}") from e
        if image_url is None:
            raise NotFound(f"No images found for {query!r}")

        try:
            image_response = requests.get(image_url, timeout=REQUEST_TIMEOUT)
            image_response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Could not download {image_url}: {e}") from e

        logger.info("Image URL for %r: %s", query, image_url)
        mime_type = image_response.headers.get("Content-Type", "image/jpeg").split(";")[0]
        stem = PurePosixPath(urlparse(image_url).path).stem or "image"
        return SearchImage(
            content=image_response.content,
            filename=f"{stem}.{extension_for(mime_type)}",
            mime_type=mime_type,
        )


@dataclass
class InMemoryImageSearchClient:
    """Test double returning a fixed image, or nothing."""

    result: Optional[SearchImage] = None
    queries: list[str] = field(default_factory=list)

    def search(self, query: str) -> SearchImage:
        self.queries.append(query)
        if self.result is None:
            raise NotFound(f"No images found for {query!r}")
        return self.result
