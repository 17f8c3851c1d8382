"""cl_renditions - On-demand image renditions with a content-addressed cache."""

from .app import create_app
from .common.errors import (
    InvalidSizeSpec,
    InvalidSource,
    RenderFailed,
    RenditionError,
    SourceNotFound,
)
from .common.rendition_store import InvalidationResult, RenditionStore, StoredRendition
from .common.rendition_store_impl import LocalRenditionStore
from .common.schemas import CropAnchor, CropRect, ResolvedDimensions, SourceImage
from .common.source_repository import SourceRepository
from .common.source_repository_impl import LocalSourceRepository
from .config import RenditionSettings
from .generator import RenditionGenerator
from .routes import create_router

__version__ = "0.1.0"

__all__ = [
    "CropAnchor",
    "CropRect",
    "InvalidSizeSpec",
    "InvalidSource",
    "InvalidationResult",
    "LocalRenditionStore",
    "LocalSourceRepository",
    "RenderFailed",
    "RenditionError",
    "RenditionGenerator",
    "RenditionSettings",
    "RenditionStore",
    "ResolvedDimensions",
    "SourceImage",
    "SourceNotFound",
    "SourceRepository",
    "StoredRendition",
    "__version__",
    "create_app",
    "create_router",
]
