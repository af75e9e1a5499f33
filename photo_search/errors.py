"""
Exception types raised while turning an image reference into pixels.

Both errors are per-image: the engine treats them as fatal only when they
concern the query image. A failing candidate is logged and scored as 0.
"""

from typing import Optional


class PhotoSearchError(Exception):
    """Base class for photo search failures tied to one image."""

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.location = location


class FetchError(PhotoSearchError):
    """Image bytes could not be retrieved (network failure, HTTP error, timeout, missing file)."""


class DecodeError(PhotoSearchError):
    """Bytes were retrieved but are not a supported or valid raster image."""
