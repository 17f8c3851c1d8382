"""Runtime settings for the rendition service."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from .common.schemas import SizePreset

ENV_PREFIX = "CL_RENDITIONS_"
DEFAULT_QUALITY = 82


def default_presets() -> dict[str, SizePreset]:
    """Named sizes a CMS registers out of the box."""
    return {
        "thumbnail": SizePreset(width=150, height=150, crop=True),
        "medium": SizePreset(width=300, height=300),
        "medium_large": SizePreset(width=768, height=0),
        "large": SizePreset(width=1024, height=1024),
    }


class RenditionSettings(BaseModel):
    """Settings shared by the store, the generator and the HTTP layer."""

    cache_dir: Path = Field(..., description="Directory holding cached renditions")
    base_url: str = Field(
        default="/renditions-cache",
        description="Public URL prefix under which cache_dir is served",
    )
    quality: int = Field(
        default=DEFAULT_QUALITY,
        ge=1,
        le=100,
        description="JPEG/WEBP encoder quality",
    )
    marker_name: str = Field(
        default=".htaccess",
        description="Access marker file kept in cache_dir (never a rendition)",
    )
    presets: dict[str, SizePreset] = Field(default_factory=default_presets)

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> "RenditionSettings":
        """Build settings from <prefix>CACHE_DIR, BASE_URL, QUALITY, MARKER_NAME.

        Raises:
            pydantic.ValidationError: If CACHE_DIR is missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        values: dict[str, object] = {}
        for field_name in ("cache_dir", "base_url", "quality", "marker_name"):
            env_name = f"{prefix}{field_name.upper()}"
            if env_name in env:
                values[field_name] = env[env_name]

        return cls.model_validate(values)
