"""Pydantic schemas for rendition requests, geometry and results."""

import re
from enum import StrEnum
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidSizeSpec

# Source ids become filename prefixes ("<id>-"), so they must not contain the
# separator or anything that could leave the cache directory.
SOURCE_ID_PATTERN = r"^[A-Za-z0-9_]+$"

_NO_CROP_TOKENS = frozenset({"", "false", "0", "no", "none"})
_DEFAULT_CROP_TOKENS = frozenset({"crop", "true", "1", "yes"})


# ─────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────


class ImageFormat(StrEnum):
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @classmethod
    def from_pil(cls, name: str | None) -> "ImageFormat | None":
        """Map a Pillow format name to a supported format, None if unsupported."""
        if not name:
            return None
        name = name.lower()
        # Multi-picture JPEGs from cameras decode and encode as plain JPEG
        if name == "mpo":
            return cls.JPEG
        try:
            return cls(name)
        except ValueError:
            return None

    @classmethod
    def from_extension(cls, extension: str) -> "ImageFormat":
        ext = extension.lower().lstrip(".")
        if ext in ("jpg", "jpeg"):
            return cls.JPEG
        return cls(ext)


class CropAnchor(StrEnum):
    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @classmethod
    def parse(cls, value: "CropAnchor | str | bool | None") -> "CropAnchor | None":
        """Normalize a crop mode token.

        Accepts None/False (scale to fit), True, the literal "crop", the bare
        anchor names and their "crop-" prefixed forms. Underscores are read
        as hyphens.

        Raises:
            InvalidSizeSpec: If the token is not a known anchor
        """
        if value is None or value is False:
            return None
        if value is True:
            return cls.CENTER
        if isinstance(value, CropAnchor):
            return value
        if not isinstance(value, str):
            raise InvalidSizeSpec(f"Unsupported crop mode: {value!r}")

        token = value.strip().lower().replace("_", "-")
        if token in _NO_CROP_TOKENS:
            return None
        if token in _DEFAULT_CROP_TOKENS:
            return cls.CENTER

        try:
            return cls(token.removeprefix("crop-"))
        except ValueError:
            raise InvalidSizeSpec(f"Unrecognized crop anchor: {value!r}") from None


def coerce_source_id(value: object) -> object:
    """Integer ids (as handed out by most media libraries) become strings."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def validate_source_id(value: str | int) -> str:
    """Coerce and check a source id.

    Raises:
        ValueError: If the id contains characters outside SOURCE_ID_PATTERN
    """
    source_id = coerce_source_id(value)
    if not isinstance(source_id, str) or not re.fullmatch(SOURCE_ID_PATTERN, source_id):
        raise ValueError(f"Invalid source id: {value!r}")
    return source_id


# ─────────────────────────────────────────────────────────────
# Source & request
# ─────────────────────────────────────────────────────────────


class SourceImage(BaseModel):
    """Metadata of a source image, as read for a single request."""

    source_id: str = Field(..., pattern=SOURCE_ID_PATTERN, description="Opaque source id")
    path: Path = Field(..., description="Absolute path of the source file")
    width: int = Field(..., ge=0, description="Pixel width")
    height: int = Field(..., ge=0, description="Pixel height")
    format: ImageFormat | None = Field(
        default=None,
        description="Encoded format, None when the codec is not supported",
    )

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("source_id", mode="before")
    @classmethod
    def _coerce_source_id(cls, v: object) -> object:
        return coerce_source_id(v)


class SizeSpec(BaseModel):
    """A rendition request before resolution.

    Attributes:
        width: Pixel count ("150", "150px", 150) or ratio numerator (<= 21)
        height: Pixel count, "auto", or ratio denominator (<= 21)
        crop: Crop anchor, None to scale to fit
    """

    width: int | float | str
    height: int | float | str = "auto"
    crop: CropAnchor | None = None

    @field_validator("crop", mode="before")
    @classmethod
    def parse_crop(cls, v: object) -> CropAnchor | None:
        if v is None or isinstance(v, (bool, str)):
            return CropAnchor.parse(v)
        raise ValueError(f"Unsupported crop mode: {v!r}")


class SizePreset(BaseModel):
    """A named size, translated to an explicit SizeSpec before rendering."""

    width: int = Field(..., gt=0)
    height: int = Field(default=0, ge=0, description="0 means derive from aspect ratio")
    crop: bool = False

    def to_spec(self) -> SizeSpec:
        return SizeSpec(
            width=self.width,
            height=self.height if self.height > 0 else "auto",
            crop=self.crop,
        )


# ─────────────────────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────────────────────


class ResolvedDimensions(BaseModel):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class CropRect(BaseModel):
    """Crop rectangle in source pixel coordinates."""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Pillow box: (left, upper, right, lower)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


class CacheKey(BaseModel):
    """Post-resolution cache key.

    Requests that resolve to the same dimensions and anchor share a key,
    whether they were expressed in pixels or as a ratio.
    """

    source_id: str = Field(..., pattern=SOURCE_ID_PATTERN)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    anchor: CropAnchor | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("source_id", mode="before")
    @classmethod
    def _coerce_source_id(cls, v: object) -> object:
        return coerce_source_id(v)

    @staticmethod
    def prefix(source_id: str) -> str:
        return f"{source_id}-"

    def __str__(self) -> str:
        key = f"{self.prefix(self.source_id)}{self.width}x{self.height}"
        if self.anchor is not None:
            key = f"{key}-{self.anchor.value}"
        return key


# ─────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────


class RenditionResult(BaseModel):
    url: str
    width: int
    height: int
    key: str
    cached: bool = Field(..., description="True if served from the cache")


class DownsizeResult(BaseModel):
    """Answer to a generic "this image at this named/array size" request."""

    url: str
    width: int
    height: int
    is_intermediate: bool = True
