"""Application factory wiring settings, store, generator and routes."""

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .common.rendition_store_impl import LocalRenditionStore
from .common.source_repository import SourceRepository
from .config import RenditionSettings
from .generator import RenditionGenerator
from .routes import create_router


def create_app(settings: RenditionSettings, sources: SourceRepository) -> FastAPI:
    """Build a FastAPI app serving renditions.

    When settings.base_url is a path (not an absolute URL pointing at a CDN or
    another web server), the cache directory is mounted there so the URLs
    returned by the API resolve.

    Example:
        from cl_renditions import LocalSourceRepository, RenditionSettings, create_app

        app = create_app(
            RenditionSettings.from_env(),
            LocalSourceRepository({42: "/srv/media/photo.jpg"}),
        )
    """
    store = LocalRenditionStore(
        settings.cache_dir,
        settings.base_url,
        marker_name=settings.marker_name,
    )
    store.ensure_directory()

    generator = RenditionGenerator(sources, store, settings)

    app = FastAPI(title="cl_renditions")
    app.state.generator = generator
    app.include_router(create_router(generator))

    if settings.base_url.startswith("/"):
        app.mount(
            settings.base_url.rstrip("/"),
            StaticFiles(directory=store.cache_dir),
            name="renditions-cache",
        )

    return app
