"""
Error taxonomy shared by the catalog, the collaborators and the HTTP layer.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base exception for gallery errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFound(GalleryError):
    """Raised when a recipe, image or remote file does not exist."""

    status_code = 404


class InvalidArgument(GalleryError):
    """Raised for bad request parameters, before any I/O happens."""

    status_code = 400


class DuplicateItem(InvalidArgument):
    """Raised when a recipe with the same folder name already exists."""


class RemoteUnavailable(GalleryError):
    """Raised when the Drive or image search API fails."""

    status_code = 500


class LocalIOFailure(GalleryError):
    """Raised when writing or removing a local file fails."""

    status_code = 500
