"""SourceRepository Protocol - how the rendition core sees the media library."""

from typing import Protocol, runtime_checkable

from .schemas import SourceImage


@runtime_checkable
class SourceRepository(Protocol):
    """Protocol for resolving source ids to image metadata.

    The media library owning the originals implements this; the core only
    ever references sources by id.
    """

    def get_source(self, source_id: str) -> SourceImage | None:
        """Load metadata (path, dimensions, format) for a source.

        Returns:
            SourceImage, or None if the id is unknown or its file is
            missing or unreadable
        """
        ...
