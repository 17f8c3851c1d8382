"""Tests for RenditionGenerator.

Tests cover:
- Cache misses producing correctly sized files
- Cache hits doing no pixel work
- Ratio / pixel requests sharing a cache key
- Error mapping (unknown source, bad size, degenerate source, codec, write)
- downsize() fallback behaviour
- Invalidation
"""

from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from cl_renditions.algo.image_render import image_render
from cl_renditions.common.errors import (
    InvalidSizeSpec,
    InvalidSource,
    RenderFailed,
    RenditionStoreError,
    SourceNotFound,
)
from cl_renditions.common.rendition_store import StoredRendition
from cl_renditions.common.rendition_store_impl import LocalRenditionStore
from cl_renditions.common.schemas import ImageFormat, SizeSpec, SourceImage
from cl_renditions.common.source_repository_impl import LocalSourceRepository
from cl_renditions.generator import RenditionGenerator


def _size_of(path: Path) -> tuple[int, int]:
    with Image.open(BytesIO(path.read_bytes())) as img:
        return img.size


class StaticSourceRepository:
    """Repository returning a fixed SourceImage, whatever the file holds."""

    def __init__(self, source: SourceImage):
        self.source = source

    def get_source(self, source_id: str) -> SourceImage | None:
        return self.source if source_id == self.source.source_id else None


class FailingStore(LocalRenditionStore):
    def store(self, key: str, data: bytes, extension: str) -> StoredRendition:
        raise RenditionStoreError("disk full")


# ============================================================================
# CACHE MISS
# ============================================================================


def test_render_returns_cache_url(generator, rendition_store):
    """Test render() returns the public URL of a new file."""
    url = generator.render(1, 150, 150, "crop")

    assert url == "/cache/1-150x150-center.jpg"
    assert (rendition_store.cache_dir / "1-150x150-center.jpg").is_file()


def test_crop_rendition_has_exact_size(generator, rendition_store):
    """Test a crop rendition is exactly the resolved size."""
    result = generator.generate(1, "16", "9", "crop")

    assert result.key == "1-800x450-center"
    assert result.cached is False
    assert _size_of(rendition_store.cache_dir / "1-800x450-center.jpg") == (800, 450)


def test_fit_rendition_stays_inside_box(generator, rendition_store):
    """Test scale-to-fit keeps the source ratio inside the resolved box."""
    result = generator.generate(1, 300, 300)

    assert (result.width, result.height) == (300, 300)
    assert result.key == "1-300x300"
    assert _size_of(rendition_store.cache_dir / "1-300x300.jpg") == (300, 225)


def test_auto_height_rendition(generator):
    """Test width-only requests derive the height."""
    result = generator.generate(1, "400px")

    assert (result.width, result.height) == (400, 300)
    assert result.url == "/cache/1-400x300.jpg"


def test_output_extension_follows_source(make_image, rendition_store):
    """Test a PNG source yields a PNG rendition."""
    repo = LocalSourceRepository({"logo": make_image("logo.png", size=(200, 100), format="PNG")})
    generator = RenditionGenerator(repo, rendition_store)

    result = generator.generate("logo", 100)

    assert result.url.endswith("logo-100x50.png")
    with Image.open(rendition_store.cache_dir / "logo-100x50.png") as img:
        assert img.format == "PNG"


def test_quality_setting_reaches_codec(generator):
    """Test the configured encoder quality is passed to the codec."""
    with patch("cl_renditions.generator.image_render", wraps=image_render) as render_mock:
        _ = generator.generate(1, 100)

    assert render_mock.call_args.kwargs["quality"] == generator.quality


# ============================================================================
# CACHE HIT
# ============================================================================


def test_second_request_is_cached(generator):
    """Test repeating a request does no pixel work."""
    with patch("cl_renditions.generator.image_render", wraps=image_render) as render_mock:
        first = generator.generate(1, 150, 150, "crop")
        second = generator.generate(1, 150, 150, "crop")

    assert render_mock.call_count == 1
    assert first.cached is False
    assert second.cached is True
    assert first.url == second.url


def test_ratio_and_pixels_share_key(generator):
    """Test 4:3 on an 800x600 source hits the 800x600 rendition."""
    with patch("cl_renditions.generator.image_render", wraps=image_render) as render_mock:
        by_ratio = generator.generate(1, "4", "3", "crop")
        by_pixels = generator.generate(1, "800px", "600px", "crop-center")

    assert by_ratio.key == by_pixels.key == "1-800x600-center"
    assert by_pixels.cached is True
    assert render_mock.call_count == 1


def test_crop_and_fit_do_not_share_key(generator):
    """Test cropped and uncropped renditions of one size are distinct."""
    cropped = generator.generate(1, 150, 150, True)
    fitted = generator.generate(1, 150, 150, False)

    assert cropped.key != fitted.key
    assert fitted.cached is False


def test_anchor_is_part_of_key(generator):
    """Test different anchors produce different files."""
    top = generator.generate(1, 150, 150, "top")
    bottom = generator.generate(1, 150, 150, "crop-bottom")

    assert top.url != bottom.url


# ============================================================================
# ERRORS
# ============================================================================


def test_unknown_source_raises(generator):
    """Test an unknown id raises SourceNotFound."""
    with pytest.raises(SourceNotFound) as exc_info:
        _ = generator.render(99, 150, 150)

    assert exc_info.value.source_id == "99"


@pytest.mark.parametrize(
    ("width", "height", "crop"),
    [
        ("abc", "auto", False),
        ("150", "tall", False),
        ("0", "9", "crop"),
        (150, 150, "sideways"),
    ],
)
def test_bad_size_raises(generator, rendition_store, width, height, crop):
    """Test malformed requests raise InvalidSizeSpec and write nothing."""
    with pytest.raises(InvalidSizeSpec):
        _ = generator.render(1, width, height, crop)

    assert rendition_store.invalidate_all().attempted == 0


def test_degenerate_source_raises(synthetic_image, rendition_store):
    """Test a zero-dimension source raises InvalidSource."""
    source = SourceImage(
        source_id="1", path=synthetic_image, width=0, height=600, format=ImageFormat.JPEG
    )
    generator = RenditionGenerator(StaticSourceRepository(source), rendition_store)

    with pytest.raises(InvalidSource):
        _ = generator.render(1, 16, 9, "crop")


def test_unsupported_codec_raises(make_image, rendition_store):
    """Test a source without a supported codec raises RenderFailed."""
    repo = LocalSourceRepository({1: make_image("a.bmp", size=(80, 60), format="BMP")})
    generator = RenditionGenerator(repo, rendition_store)

    with pytest.raises(RenderFailed):
        _ = generator.render(1, 40)


def test_corrupt_source_raises(tmp_path, rendition_store):
    """Test a decode failure raises RenderFailed and caches nothing."""
    path = tmp_path / "broken.jpg"
    _ = path.write_bytes(b"definitely not jpeg data")
    source = SourceImage(source_id="1", path=path, width=800, height=600, format=ImageFormat.JPEG)
    generator = RenditionGenerator(StaticSourceRepository(source), rendition_store)

    with pytest.raises(RenderFailed):
        _ = generator.render(1, 150, 150, "crop")

    assert rendition_store.lookup("1-150x150-center") is None


def test_store_failure_raises(source_repository, settings):
    """Test a cache write failure raises RenderFailed."""
    store = FailingStore(settings.cache_dir, settings.base_url)
    generator = RenditionGenerator(source_repository, store, settings)

    with pytest.raises(RenderFailed, match="disk full"):
        _ = generator.render(1, 150)


def test_out_of_memory_raises_render_failed(generator, rendition_store):
    """Test an allocation failure for a huge explicit size becomes RenderFailed."""
    with patch("cl_renditions.generator.image_render", side_effect=MemoryError()):
        with pytest.raises(RenderFailed):
            _ = generator.render(1, 100000, 100000, "crop")

        assert generator.downsize(1, (100000, 100000, True)) is None

    assert rendition_store.lookup("1-100000x100000-center") is None


# ============================================================================
# DOWNSIZE
# ============================================================================


def test_downsize_preset(generator):
    """Test a named preset resolves to its configured size."""
    result = generator.downsize(1, "thumbnail")

    assert result is not None
    assert result.url == "/cache/1-150x150-center.jpg"
    assert (result.width, result.height) == (150, 150)
    assert result.is_intermediate is True


def test_downsize_auto_height_preset(generator):
    """Test a preset without height derives it from the source."""
    result = generator.downsize(1, "medium_large")

    assert result is not None
    assert (result.width, result.height) == (768, 576)


@pytest.mark.parametrize(
    ("size", "expected_url"),
    [
        ((300,), "/cache/1-300x225.jpg"),
        ([300, None], "/cache/1-300x225.jpg"),
        ((300, 0), "/cache/1-300x225.jpg"),
        ((300, "auto"), "/cache/1-300x225.jpg"),
        ((200, 100, True), "/cache/1-200x100-center.jpg"),
        (("16", "9", "crop-top"), "/cache/1-800x450-top.jpg"),
        (SizeSpec(width=120, height=120, crop="left"), "/cache/1-120x120-left.jpg"),
    ],
)
def test_downsize_explicit_sizes(generator, size, expected_url):
    """Test sequences and SizeSpec instances are accepted."""
    result = generator.downsize(1, size)

    assert result is not None
    assert result.url == expected_url


@pytest.mark.parametrize("size", ["no_such_preset", (), (0,), [None, 100], (150, 150, "sideways")])
def test_downsize_unusable_size_returns_none(generator, size):
    """Test unknown presets and empty or invalid sizes return None."""
    assert generator.downsize(1, size) is None


def test_downsize_failure_returns_none(generator):
    """Test rendering errors make downsize fall back to None."""
    assert generator.downsize(99, "thumbnail") is None
    assert generator.downsize(1, ("abc",)) is None


# ============================================================================
# INVALIDATION
# ============================================================================


def test_invalidate_forces_regeneration(generator):
    """Test invalidation drops renditions so the next request is a miss."""
    _ = generator.generate(1, 150, 150, "crop")
    _ = generator.generate(1, 300)

    result = generator.invalidate(1)

    assert result.deleted == 2
    assert generator.generate(1, 150, 150, "crop").cached is False


def test_invalidate_rejects_malformed_id(generator):
    """Test a malformed id raises ValueError."""
    with pytest.raises(ValueError):
        _ = generator.invalidate("1*")


def test_invalidate_all(generator, rendition_store):
    """Test invalidate_all empties the cache except for the marker."""
    _ = generator.generate(1, 150, 150, "crop")
    _ = generator.generate(1, 16, 9, "crop")

    result = generator.invalidate_all()

    assert result.deleted == 2
    assert [p.name for p in rendition_store.cache_dir.iterdir()] == [".htaccess"]
