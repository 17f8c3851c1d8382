"""Rendition route factory."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from .common.errors import (
    InvalidSizeSpec,
    InvalidSource,
    RenderFailed,
    RenditionError,
    SourceNotFound,
)
from .common.rendition_store import InvalidationResult
from .common.schemas import DownsizeResult
from .generator import RenditionGenerator


class RenditionResponse(BaseModel):
    url: str
    width: int
    height: int
    cached: bool


class InvalidationResponse(BaseModel):
    attempted: int
    deleted: int
    failed: list[str]

    @classmethod
    def from_result(cls, result: InvalidationResult) -> "InvalidationResponse":
        return cls(
            attempted=result.attempted,
            deleted=result.deleted,
            failed=[outcome.path.name for outcome in result.failed],
        )


_ERROR_STATUS: dict[type[RenditionError], int] = {
    SourceNotFound: 404,
    InvalidSizeSpec: 422,
    InvalidSource: 409,
    RenderFailed: 500,
}


def _http_error(exc: RenditionError) -> HTTPException:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def create_router(generator: RenditionGenerator) -> APIRouter:
    """Create router with an injected generator.

    Args:
        generator: RenditionGenerator shared by all requests

    Returns:
        Configured APIRouter with rendition and invalidation endpoints
    """
    router = APIRouter()

    # Handlers are sync on purpose: pixel work runs in FastAPI's threadpool
    @router.get("/renditions/{source_id}", response_model=RenditionResponse)
    def get_rendition(
        source_id: str,
        width: Annotated[str, Query(description="Pixels (150, 150px) or ratio numerator (16)")],
        height: Annotated[
            str, Query(description="Pixels, 'auto', or ratio denominator (9)")
        ] = "auto",
        crop: Annotated[
            str | None, Query(description="Crop anchor (crop, top, bottom-left, ...)")
        ] = None,
    ) -> RenditionResponse:
        """Return the URL of a rendition, generating it on first request."""
        try:
            result = generator.generate(source_id, width, height, crop)
        except RenditionError as e:
            raise _http_error(e) from e

        return RenditionResponse(
            url=result.url,
            width=result.width,
            height=result.height,
            cached=result.cached,
        )

    @router.get("/renditions/{source_id}/sizes/{preset}", response_model=DownsizeResult)
    def get_preset_rendition(source_id: str, preset: str) -> DownsizeResult:
        """Return a rendition for a named size (thumbnail, medium, ...)."""
        result = generator.downsize(source_id, preset)
        if result is None:
            raise HTTPException(
                status_code=404,
                detail=f"No rendition of '{source_id}' available for size '{preset}'",
            )
        return result

    @router.delete("/renditions/{source_id}", response_model=InvalidationResponse)
    def invalidate_source(source_id: str) -> InvalidationResponse:
        """Delete all cached renditions of one source."""
        try:
            result = generator.invalidate(source_id)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return InvalidationResponse.from_result(result)

    @router.delete("/renditions", response_model=InvalidationResponse)
    def invalidate_all() -> InvalidationResponse:
        """Delete every cached rendition."""
        return InvalidationResponse.from_result(generator.invalidate_all())

    # Mark functions as used (accessed via FastAPI decorators)
    _ = (get_rendition, get_preset_rendition, invalidate_source, invalidate_all)

    return router
