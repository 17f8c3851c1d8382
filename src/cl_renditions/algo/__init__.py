"""Geometry, crop planning and codec algorithms."""

from .crop_planner import plan_crop
from .geometry import resolve_dimensions
from .image_render import image_render

__all__ = ["image_render", "plan_crop", "resolve_dimensions"]
