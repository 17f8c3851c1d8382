"""Test configuration and fixtures for cl_renditions.

This module provides:
- Synthetic source images generated with Pillow (no checked-in media)
- Store / repository / generator fixtures rooted in tmp_path
- A FastAPI TestClient wired to the rendition router
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw

from cl_renditions.common.rendition_store_impl import LocalRenditionStore
from cl_renditions.common.source_repository_impl import LocalSourceRepository
from cl_renditions.config import RenditionSettings
from cl_renditions.generator import RenditionGenerator
from cl_renditions.routes import create_router

ImageFactory = Callable[..., Path]


# ============================================================================
# Source Image Fixtures
# ============================================================================


@pytest.fixture
def make_image(tmp_path: Path) -> ImageFactory:
    """Factory writing a patterned image of a given size and format."""
    sources_dir = tmp_path / "sources"
    sources_dir.mkdir()

    def _make(
        name: str = "source.jpg",
        size: tuple[int, int] = (800, 600),
        format: str = "JPEG",
        mode: str = "RGB",
    ) -> Path:
        width, height = size
        background = (73, 109, 137, 128) if mode == "RGBA" else (73, 109, 137)
        img = Image.new(mode, size, color=background)
        draw = ImageDraw.Draw(img)

        # Grid plus a centre disc so crops of different anchors differ
        for x in range(0, width, 50):
            draw.line([(x, 0), (x, height)], fill=(255, 255, 255), width=2)
        for y in range(0, height, 50):
            draw.line([(0, y), (width, y)], fill=(255, 255, 255), width=2)
        draw.ellipse(
            [width // 2 - 100, height // 2 - 100, width // 2 + 100, height // 2 + 100],
            fill=(200, 100, 100),
        )

        path = sources_dir / name
        img.save(path, format)
        return path

    return _make


@pytest.fixture
def synthetic_image(make_image: ImageFactory) -> Path:
    """800x600 JPEG source."""
    return make_image()


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> RenditionSettings:
    return RenditionSettings(cache_dir=tmp_path / "cache", base_url="/cache")


@pytest.fixture
def rendition_store(settings: RenditionSettings) -> LocalRenditionStore:
    return LocalRenditionStore(
        settings.cache_dir,
        settings.base_url,
        marker_name=settings.marker_name,
    )


@pytest.fixture
def source_repository(synthetic_image: Path) -> LocalSourceRepository:
    """Repository with the 800x600 JPEG registered as source 1."""
    return LocalSourceRepository({1: synthetic_image})


@pytest.fixture
def generator(
    source_repository: LocalSourceRepository,
    rendition_store: LocalRenditionStore,
    settings: RenditionSettings,
) -> RenditionGenerator:
    return RenditionGenerator(source_repository, rendition_store, settings)


@pytest.fixture
def api_client(generator: RenditionGenerator) -> TestClient:
    """Provide FastAPI TestClient for route testing."""
    app = FastAPI()
    app.include_router(create_router(generator))
    return TestClient(app)
