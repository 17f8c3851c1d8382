"""
RenditionStore Protocol - interface for the content-addressed rendition cache.

Design goals:
- One flat namespace of "<cache key>.<ext>" entries
- Keys are derived from resolved request parameters, never from content
- Writes replace whole files; nothing is mutated in place
- Invalidation is best effort and reports per-file outcomes
"""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, Final, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

ALLOWED_EXTENSIONS: Final[frozenset[str]] = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
DEFAULT_EXTENSION: Final[str] = "jpg"


def normalize_extension(extension: str | None) -> str:
    """Lower-case, strip the dot, and fall back to jpg outside the allow-list."""
    ext = (extension or "").lower().lstrip(".")
    return ext if ext in ALLOWED_EXTENSIONS else DEFAULT_EXTENSION


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class StoredRendition(BaseModel):
    """A cached rendition file."""

    key: str = Field(..., description="Cache key (file name without extension)")
    path: Path = Field(..., description="Absolute path of the cached file")
    url: str = Field(..., description="Public URL of the cached file")
    size: int = Field(..., ge=0, description="File size in bytes")

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")


class FileDeletion(BaseModel):
    """Outcome of deleting one cached file."""

    path: Path
    deleted: bool
    error: str | None = None


class InvalidationResult(BaseModel):
    """Per-file outcomes of an invalidation pass."""

    outcomes: list[FileDeletion] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def deleted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.deleted)

    @property
    def failed(self) -> list[FileDeletion]:
        return [outcome for outcome in self.outcomes if not outcome.deleted]


# ---------------------------------------------------------------------------
# Storage Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RenditionStore(Protocol):
    """
    Protocol for the rendition cache.

    Implementations own:
    - storage root and public URL prefix
    - the access marker file
    - file naming ("<key>.<ext>")

    Callers interact ONLY via cache keys and source ids.
    """

    def ensure_directory(self) -> None:
        """
        Create the cache directory and its access marker.

        Idempotent; safe to call before every write.
        """
        ...

    def lookup(self, key: str) -> StoredRendition | None:
        """
        Find the cached file for a key, whatever its extension.

        Returns:
            The stored rendition, or None on a miss.
        """
        ...

    def store(self, key: str, data: bytes, extension: str) -> StoredRendition:
        """
        Write encoded rendition bytes under a key.

        The extension is normalized against ALLOWED_EXTENSIONS.

        Raises:
            RenditionStoreError: If the file cannot be written.
        """
        ...

    def invalidate(self, source_id: str) -> InvalidationResult:
        """Delete every cached rendition of one source."""
        ...

    def invalidate_all(self) -> InvalidationResult:
        """Delete every cached rendition, keeping the access marker."""
        ...

    def url_for(self, filename: str) -> str:
        """Public URL of a cache entry."""
        ...
