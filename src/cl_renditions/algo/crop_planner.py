"""Pure crop geometry: which part of the source survives a crop to a target ratio."""

from enum import Enum
from typing import Final

from ..common.errors import InvalidSizeSpec, InvalidSource
from ..common.schemas import CropAnchor, CropRect
from .geometry import round_half_up


class _Align(Enum):
    START = "start"
    CENTER = "center"
    END = "end"


# anchor -> (horizontal, vertical) alignment of the crop window
_ANCHOR_ALIGNMENT: Final[dict[CropAnchor, tuple[_Align, _Align]]] = {
    CropAnchor.CENTER: (_Align.CENTER, _Align.CENTER),
    CropAnchor.TOP: (_Align.CENTER, _Align.START),
    CropAnchor.BOTTOM: (_Align.CENTER, _Align.END),
    CropAnchor.LEFT: (_Align.START, _Align.CENTER),
    CropAnchor.RIGHT: (_Align.END, _Align.CENTER),
    CropAnchor.TOP_LEFT: (_Align.START, _Align.START),
    CropAnchor.TOP_RIGHT: (_Align.END, _Align.START),
    CropAnchor.BOTTOM_LEFT: (_Align.START, _Align.END),
    CropAnchor.BOTTOM_RIGHT: (_Align.END, _Align.END),
}


def _offset(free_space: int, align: _Align) -> int:
    if align is _Align.START:
        return 0
    if align is _Align.END:
        return free_space
    return round_half_up(free_space / 2)


def plan_crop(
    source_width: int,
    source_height: int,
    target_width: int,
    target_height: int,
    anchor: CropAnchor = CropAnchor.CENTER,
) -> CropRect:
    """
    Compute the largest source window with the target's aspect ratio.

    The window spans the full source height when the source is proportionally
    wider than the target, otherwise the full source width. The anchor places
    it along the reduced axis.

    Args:
        source_width: Source pixel width
        source_height: Source pixel height
        target_width: Target pixel width
        target_height: Target pixel height
        anchor: Which part of the source to keep

    Returns:
        CropRect fully contained in the source bounds

    Raises:
        InvalidSource: If the source has a zero dimension
        InvalidSizeSpec: If the target has a non-positive dimension
    """
    if source_width <= 0 or source_height <= 0:
        raise InvalidSource(
            f"Source has degenerate dimensions {source_width}x{source_height}"
        )
    if target_width <= 0 or target_height <= 0:
        raise InvalidSizeSpec(f"Invalid target size {target_width}x{target_height}")

    target_ratio = target_width / target_height
    source_ratio = source_width / source_height

    if source_ratio > target_ratio:
        crop_height = source_height
        crop_width = min(source_width, max(1, round_half_up(source_height * target_ratio)))
    else:
        crop_width = source_width
        crop_height = min(source_height, max(1, round_half_up(source_width / target_ratio)))

    horizontal, vertical = _ANCHOR_ALIGNMENT[CropAnchor(anchor)]

    return CropRect(
        x=_offset(source_width - crop_width, horizontal),
        y=_offset(source_height - crop_height, vertical),
        width=crop_width,
        height=crop_height,
    )
