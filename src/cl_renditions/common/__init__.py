"""Common module - protocols, schemas, errors and local implementations."""

from .errors import RenditionError
from .rendition_store import RenditionStore
from .schemas import CacheKey, CropAnchor, SourceImage
from .source_repository import SourceRepository

__all__ = [
    "CacheKey",
    "CropAnchor",
    "RenditionError",
    "RenditionStore",
    "SourceImage",
    "SourceRepository",
]
