"""Exception hierarchy for rendition generation and caching.

Every failure of a single render call is terminal: nothing here is retried
internally. Callers are expected to fall back to the original image.
"""

from __future__ import annotations

from os import PathLike


class RenditionError(Exception):
    """Base class for rendition-related errors."""


class SourceNotFound(RenditionError):
    """Source id is unknown, or its file is missing or unreadable."""

    def __init__(self, source_id: str | int, reason: str | None = None):
        self.source_id: str = str(source_id)
        message = f"Source image '{source_id}' not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidSizeSpec(RenditionError, ValueError):
    """Width, height or crop token could not be interpreted."""


class InvalidSource(RenditionError):
    """Source image has degenerate (zero) dimensions."""


class RenderFailed(RenditionError):
    """Codec or write failure while producing a rendition."""


class RenditionStoreError(RenditionError):
    """Base class for rendition store failures."""


class CacheDirectoryCreationError(RenditionStoreError):
    def __init__(self, path: str | PathLike[str]):
        self.path: str = str(path)
        super().__init__(f"Failed to create rendition cache directory '{path}'")
