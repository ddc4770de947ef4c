"""Target size and crop planning for each fit mode.

``fill``
    Exactly the requested box, stretched.
``contain``
    Largest size that fits inside the box, keeping the aspect ratio.
``cover``
    Exactly the requested box; a crop of the source with the box's aspect
    ratio is selected according to ``position`` (or a focus point).
``inside``
    ``contain``, but only when the source exceeds the box. Never upscales.
``outside``
    Scales by the covering factor, but only when the source is smaller
    than the box. Never downscales.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from ..errors import GeometryError
from ..models import CropRect, OptimizationOptions, TargetGeometry

Point = Tuple[float, float]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _at_least_one(value: float) -> int:
    return max(1, round_half_up(value))


def _contain_size(width: int, height: int, box_width: int, box_height: int) -> Tuple[int, int]:
    aspect = width / height
    if box_width / box_height > aspect:
        return _at_least_one(box_height * aspect), box_height
    return box_width, _at_least_one(box_width / aspect)


def _cover_size(width: int, height: int, box_width: int, box_height: int) -> Tuple[int, int]:
    aspect = width / height
    if box_width / box_height > aspect:
        return box_width, _at_least_one(box_width / aspect)
    return _at_least_one(box_height * aspect), box_height


def _anchor_offset(free: int, low: bool, high: bool) -> int:
    if low:
        return 0
    if high:
        return free
    return round_half_up(free / 2)


def _focus_offset(free: int, extent: int, center: float) -> int:
    return min(free, max(0, round_half_up(center - extent / 2)))


def crop_for_cover(
    width: int,
    height: int,
    box_width: int,
    box_height: int,
    position: str = "center",
    focus: Optional[Point] = None,
) -> CropRect:
    """Select the region of the source whose aspect ratio matches the box."""
    target_aspect = box_width / box_height
    if width / height > target_aspect:
        crop_width = min(width, _at_least_one(height * target_aspect))
        crop_height = height
    else:
        crop_width = width
        crop_height = min(height, _at_least_one(width / target_aspect))

    free_x = width - crop_width
    free_y = height - crop_height
    if focus is not None:
        x = _focus_offset(free_x, crop_width, focus[0])
        y = _focus_offset(free_y, crop_height, focus[1])
    else:
        x = _anchor_offset(free_x, "left" in position, "right" in position)
        y = _anchor_offset(free_y, "top" in position, "bottom" in position)
    return CropRect(x, y, crop_width, crop_height)


def plan(
    original_width: int,
    original_height: int,
    options: OptimizationOptions,
    focus: Optional[Point] = None,
) -> TargetGeometry:
    if original_width <= 0 or original_height <= 0:
        raise GeometryError(f"Source has no area ({original_width}x{original_height})")

    box_width = original_width if options.max_width is None else options.max_width
    box_height = original_height if options.max_height is None else options.max_height
    if box_width <= 0 or box_height <= 0:
        raise GeometryError(f"Target bounds must be positive ({box_width}x{box_height})")

    fit = options.fit
    if fit == "fill":
        return TargetGeometry(box_width, box_height)

    if fit == "cover":
        crop = crop_for_cover(
            original_width,
            original_height,
            box_width,
            box_height,
            options.position,
            focus,
        )
        return TargetGeometry(box_width, box_height, crop)

    if fit == "contain":
        return TargetGeometry(*_contain_size(original_width, original_height, box_width, box_height))

    if fit == "inside":
        if original_width > box_width or original_height > box_height:
            return TargetGeometry(*_contain_size(original_width, original_height, box_width, box_height))
        return TargetGeometry(original_width, original_height)

    if fit == "outside":
        if original_width < box_width or original_height < box_height:
            return TargetGeometry(*_cover_size(original_width, original_height, box_width, box_height))
        return TargetGeometry(original_width, original_height)

    raise GeometryError(f"Unsupported fit mode: {fit}")
