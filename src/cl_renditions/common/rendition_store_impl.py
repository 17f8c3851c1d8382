from __future__ import annotations

import os
import re
import tempfile
from os import PathLike
from pathlib import Path
from typing import Final

from typing_extensions import override

from loguru import logger

from .errors import CacheDirectoryCreationError, RenditionStoreError
from .rendition_store import (
    FileDeletion,
    InvalidationResult,
    RenditionStore,
    StoredRendition,
    normalize_extension,
)
from .schemas import CacheKey, validate_source_id

# Served files must bypass the CMS front controller
DEFAULT_MARKER_CONTENT: Final[str] = (
    "<IfModule mod_rewrite.c>\n"
    "RewriteEngine Off\n"
    "</IfModule>\n"
)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class LocalRenditionStore(RenditionStore):
    """
    Local filesystem implementation of RenditionStore.

    Layout:
        cache_dir/
            .htaccess
            <source_id>-<width>x<height>[-<anchor>].<ext>
    """

    _TMP_PREFIX: Final[str] = ".tmp-"
    _FILE_MODE: Final[int] = 0o644

    def __init__(
        self,
        cache_dir: str | PathLike[str],
        base_url: str,
        *,
        marker_name: str = ".htaccess",
        marker_content: str = DEFAULT_MARKER_CONTENT,
    ):
        self._cache_dir: Path = Path(cache_dir).expanduser().resolve()
        self._base_url: str = base_url.rstrip("/")
        self._marker_name: str = marker_name
        self._marker_content: str = marker_content

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def marker_path(self) -> Path:
        return self._cache_dir / self._marker_name

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_key(self, key: str) -> str:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return key

    def _safe_path(self, filename: str) -> Path:
        """
        Resolve a cache file name and make sure it stays in the cache dir.
        Prevents path traversal.
        """
        resolved = (self._cache_dir / filename).resolve()

        if resolved.parent != self._cache_dir:
            raise ValueError("Invalid cache file name (path traversal detected)")

        return resolved

    def _entries(self, pattern: str) -> list[Path]:
        """Cached renditions matching pattern, never the marker or in-flight temp files."""
        if not self._cache_dir.is_dir():
            return []
        return sorted(
            path
            for path in self._cache_dir.glob(pattern)
            if path.is_file()
            and path.name != self._marker_name
            and not path.name.startswith(self._TMP_PREFIX)
        )

    def _delete(self, paths: list[Path]) -> InvalidationResult:
        outcomes: list[FileDeletion] = []

        for path in paths:
            try:
                path.unlink()
                outcomes.append(FileDeletion(path=path, deleted=True))
            except OSError as e:
                logger.warning(f"Failed to delete cached rendition {path}: {e}")
                outcomes.append(FileDeletion(path=path, deleted=False, error=str(e)))

        return InvalidationResult(outcomes=outcomes)

    def _stored(self, key: str, path: Path) -> StoredRendition:
        return StoredRendition(
            key=key,
            path=path,
            url=self.url_for(path.name),
            size=path.stat().st_size,
        )

    # ------------------------------------------------------------------
    # Directory lifecycle
    # ------------------------------------------------------------------

    @override
    def ensure_directory(self) -> None:
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            if not self.marker_path.exists():
                _ = self.marker_path.write_text(self._marker_content, encoding="utf-8")
        except OSError as e:
            raise CacheDirectoryCreationError(self._cache_dir) from e

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @override
    def lookup(self, key: str) -> StoredRendition | None:
        key = self._check_key(key)

        for path in self._entries(f"{key}.*"):
            if path.stem == key:
                try:
                    return self._stored(key, path)
                except FileNotFoundError:
                    # Invalidated between glob and stat
                    continue

        return None

    @override
    def url_for(self, filename: str) -> str:
        return f"{self._base_url}/{filename}"

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    @override
    def store(self, key: str, data: bytes, extension: str) -> StoredRendition:
        key = self._check_key(key)
        filename = f"{key}.{normalize_extension(extension)}"

        self.ensure_directory()
        dst = self._safe_path(filename)

        # Whole-file replace: readers see the old file or the new one, never a partial write
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=self._TMP_PREFIX, dir=self._cache_dir)
            try:
                with os.fdopen(fd, "wb") as f:
                    _ = f.write(data)
                os.chmod(tmp_name, self._FILE_MODE)
                os.replace(tmp_name, dst)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise RenditionStoreError(f"Failed to write rendition '{filename}': {e}") from e

        return StoredRendition(
            key=key,
            path=dst,
            url=self.url_for(filename),
            size=len(data),
        )

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    @override
    def invalidate(self, source_id: str) -> InvalidationResult:
        source_id = validate_source_id(source_id)
        return self._delete(self._entries(f"{CacheKey.prefix(source_id)}*"))

    @override
    def invalidate_all(self) -> InvalidationResult:
        return self._delete(self._entries("*"))
