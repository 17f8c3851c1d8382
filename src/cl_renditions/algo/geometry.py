"""Pure target-dimension resolution (no I/O)."""

import math
import re
from typing import Final

from ..common.errors import InvalidSizeSpec, InvalidSource
from ..common.schemas import ResolvedDimensions

# Paired numbers at or below this are read as an aspect ratio (16:9, 4:3, 21:9)
RATIO_THRESHOLD: Final[int] = 21
AUTO: Final[str] = "auto"

_NUMERIC_TOKEN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$", re.IGNORECASE)

SizeToken = int | float | str | None


def round_half_up(value: float) -> int:
    """Round a non-negative value with .5 going up (not to even)."""
    return int(math.floor(value + 0.5))


def parse_size_token(value: SizeToken) -> float | None:
    """Parse a pixel or ratio token, stripping a "px" unit suffix.

    Returns:
        The numeric value, or None if the token is not a number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    match = _NUMERIC_TOKEN.match(value)
    if match is None:
        return None
    return float(match.group(1))


def is_auto(value: SizeToken) -> bool:
    return isinstance(value, str) and value.strip().lower() == AUTO


def resolve_dimensions(
    source_width: int,
    source_height: int,
    width: SizeToken,
    height: SizeToken = AUTO,
) -> ResolvedDimensions:
    """
    Resolve the requested width/height tokens against a source size.

    Three modes, in priority order:
        - aspect ratio: both tokens are numbers <= RATIO_THRESHOLD; the largest
          box of that ratio fitting the source (never exceeds the source)
        - auto height: height is "auto"; height follows the source ratio
        - explicit: both tokens are pixel counts, passed through (may upscale)

    Args:
        source_width: Source pixel width
        source_height: Source pixel height
        width: Width token ("150", "150px", 150, or a ratio numerator)
        height: Height token ("auto", pixel count, or a ratio denominator)

    Returns:
        ResolvedDimensions with positive width and height

    Raises:
        InvalidSource: If the source has a zero dimension
        InvalidSizeSpec: If a token is missing or malformed, or resolves to
            a non-positive size
    """
    if source_width <= 0 or source_height <= 0:
        raise InvalidSource(
            f"Source has degenerate dimensions {source_width}x{source_height}"
        )

    w = parse_size_token(width)
    if w is None:
        raise InvalidSizeSpec(f"Width must be a number, got {width!r}")

    if is_auto(height):
        target_width = int(w)
        target_height = round_half_up(target_width * source_height / source_width)
        return _checked(target_width, target_height, width, height)

    h = parse_size_token(height)
    if h is None:
        raise InvalidSizeSpec(f"Height must be a number or {AUTO!r}, got {height!r}")

    if w <= RATIO_THRESHOLD and h <= RATIO_THRESHOLD:
        return _resolve_ratio(source_width, source_height, w, h)

    return _checked(int(w), int(h), width, height)


def _resolve_ratio(
    source_width: int,
    source_height: int,
    ratio_width: float,
    ratio_height: float,
) -> ResolvedDimensions:
    if ratio_width <= 0 or ratio_height <= 0:
        raise InvalidSizeSpec(f"Invalid aspect ratio {ratio_width:g}:{ratio_height:g}")

    ratio = ratio_width / ratio_height

    if source_width / source_height > ratio:
        # Source is wider than the ratio: keep full height
        target_height = source_height
        target_width = round_half_up(source_height * ratio)
    else:
        target_width = source_width
        target_height = round_half_up(source_width / ratio)

    return ResolvedDimensions(
        width=max(1, target_width),
        height=max(1, target_height),
    )


def _checked(
    target_width: int,
    target_height: int,
    width: SizeToken,
    height: SizeToken,
) -> ResolvedDimensions:
    if target_width <= 0 or target_height <= 0:
        raise InvalidSizeSpec(
            f"Size {width!r}x{height!r} resolves to {target_width}x{target_height}"
        )
    return ResolvedDimensions(width=target_width, height=target_height)
