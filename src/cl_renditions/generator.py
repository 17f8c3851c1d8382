"""Rendition generator - orchestrates resolve, crop plan, codec and cache."""

from collections.abc import Sequence

from loguru import logger
from PIL import Image
from pydantic import ValidationError

from .algo.crop_planner import plan_crop
from .algo.geometry import AUTO, SizeToken, resolve_dimensions
from .algo.image_render import image_render
from .common.errors import RenderFailed, RenditionError, RenditionStoreError, SourceNotFound
from .common.rendition_store import InvalidationResult, RenditionStore, normalize_extension
from .common.schemas import (
    CacheKey,
    CropAnchor,
    DownsizeResult,
    ImageFormat,
    RenditionResult,
    ResolvedDimensions,
    SizeSpec,
    SourceImage,
    coerce_source_id,
)
from .common.source_repository import SourceRepository
from .config import DEFAULT_QUALITY, RenditionSettings, default_presets

CropMode = CropAnchor | str | bool | None
SizeRequest = str | SizeSpec | Sequence[SizeToken | bool]


class RenditionGenerator:
    """Produces renditions on demand and maintains their cache.

    Responsibilities:
    - Loads source metadata from the SourceRepository
    - Resolves the requested size and derives the cache key
    - Serves cache hits without any pixel work
    - On a miss, crops/scales/encodes and writes through the RenditionStore

    Construct one per process (or per request) and hand it to callers;
    there is no module-level instance.

    Example:
        settings = RenditionSettings(cache_dir="./cache", base_url="/cache")
        store = LocalRenditionStore(settings.cache_dir, settings.base_url)
        generator = RenditionGenerator(LocalSourceRepository({42: "a.jpg"}), store, settings)

        url = generator.render(42, "16", "9", "crop")
    """

    def __init__(
        self,
        sources: SourceRepository,
        store: RenditionStore,
        settings: RenditionSettings | None = None,
    ):
        self.sources: SourceRepository = sources
        self.store: RenditionStore = store
        self.quality: int = settings.quality if settings is not None else DEFAULT_QUALITY
        self.presets = dict(settings.presets) if settings is not None else default_presets()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
        self,
        source_id: str | int,
        width: SizeToken,
        height: SizeToken = AUTO,
        crop: CropMode = False,
    ) -> str:
        """Return the URL of a rendition, generating it on a cache miss.

        Raises:
            SourceNotFound: Unknown source or missing/unreadable file
            InvalidSizeSpec: Malformed width, height or crop token
            InvalidSource: Source with a zero dimension
            RenderFailed: Codec or write failure
        """
        return self.generate(source_id, width, height, crop).url

    def generate(
        self,
        source_id: str | int,
        width: SizeToken,
        height: SizeToken = AUTO,
        crop: CropMode = False,
    ) -> RenditionResult:
        """Like render(), but also reports the resolved box and whether it was cached."""
        source = self._load_source(source_id)
        anchor = CropAnchor.parse(crop)
        dimensions = resolve_dimensions(source.width, source.height, width, height)

        key = str(
            CacheKey(
                source_id=source.source_id,
                width=dimensions.width,
                height=dimensions.height,
                anchor=anchor,
            )
        )

        cached = self.store.lookup(key)
        if cached is not None:
            logger.debug(f"Rendition cache hit: {key}")
            return RenditionResult(
                url=cached.url,
                width=dimensions.width,
                height=dimensions.height,
                key=key,
                cached=True,
            )

        extension = normalize_extension(source.path.suffix)
        data = self._render_pixels(source, dimensions, anchor, extension)

        try:
            stored = self.store.store(key, data, extension)
        except RenditionStoreError as e:
            raise RenderFailed(f"Failed to cache rendition {key}: {e}") from e

        logger.info(f"Generated rendition {stored.path.name} ({stored.size} bytes)")

        return RenditionResult(
            url=stored.url,
            width=dimensions.width,
            height=dimensions.height,
            key=key,
            cached=False,
        )

    def downsize(self, source_id: str | int, size: SizeRequest) -> DownsizeResult | None:
        """Answer a generic "this image at this size" request.

        Args:
            source_id: Source id
            size: Preset name, SizeSpec, or (width[, height[, crop]])

        Returns:
            DownsizeResult, or None when the size is unknown or the rendition
            could not be produced (the caller should serve the original)
        """
        spec = self._spec_for(size)
        if spec is None:
            return None

        try:
            result = self.generate(source_id, spec.width, spec.height, spec.crop)
        except RenditionError as e:
            logger.error(f"Falling back to original for source {source_id}: {e}")
            return None

        return DownsizeResult(url=result.url, width=result.width, height=result.height)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, source_id: str | int) -> InvalidationResult:
        """Drop every cached rendition of one source (e.g. after it was deleted).

        Raises:
            ValueError: If the source id is malformed
        """
        result = self.store.invalidate(str(coerce_source_id(source_id)))
        logger.info(
            f"Invalidated renditions of source {source_id}: "
            + f"{result.deleted}/{result.attempted} removed"
        )
        return result

    def invalidate_all(self) -> InvalidationResult:
        result = self.store.invalidate_all()
        logger.info(f"Invalidated all renditions: {result.deleted}/{result.attempted} removed")
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_source(self, source_id: str | int) -> SourceImage:
        source = self.sources.get_source(str(coerce_source_id(source_id)))
        if source is None:
            raise SourceNotFound(source_id)
        return source

    def _render_pixels(
        self,
        source: SourceImage,
        dimensions: ResolvedDimensions,
        anchor: CropAnchor | None,
        extension: str,
    ) -> bytes:
        if source.format is None:
            raise RenderFailed(f"Unsupported image format for source {source.source_id}")

        crop_rect = None
        if anchor is not None:
            crop_rect = plan_crop(
                source.width,
                source.height,
                dimensions.width,
                dimensions.height,
                anchor,
            )

        # Explicit sizes may upscale far enough to exhaust memory (MemoryError)
        try:
            return image_render(
                input_path=source.path,
                width=dimensions.width,
                height=dimensions.height,
                format=ImageFormat.from_extension(extension),
                crop=crop_rect,
                quality=self.quality,
            )
        except (OSError, ValueError, MemoryError, Image.DecompressionBombError) as e:
            raise RenderFailed(f"Failed to render source {source.source_id}: {e}") from e

    def _spec_for(self, size: SizeRequest) -> SizeSpec | None:
        if isinstance(size, SizeSpec):
            return size

        if isinstance(size, str):
            preset = self.presets.get(size)
            return preset.to_spec() if preset is not None else None

        if not size or not size[0]:
            return None

        # A missing or zero height means proportional, as with presets
        height = size[1] if len(size) > 1 and size[1] else AUTO
        crop = size[2] if len(size) > 2 else False

        try:
            return SizeSpec(width=size[0], height=height, crop=crop)
        except ValidationError as e:
            logger.error(f"Invalid size request {size!r}: {e}")
            return None
