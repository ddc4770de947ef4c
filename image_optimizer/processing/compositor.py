from __future__ import annotations

from typing import List, Optional, Tuple

from PIL import Image, ImageColor

from . import filters
from ..config import SETTINGS
from ..errors import CompositeError
from ..models import OptimizationOptions, TargetGeometry
from .geometry import round_half_up

Box = Tuple[int, int, int, int]


def parse_color(color: str) -> Tuple[int, int, int, int]:
    try:
        return ImageColor.getcolor(color, "RGBA")
    except ValueError as exc:
        raise CompositeError(f"Invalid background colour: {color!r}") from exc


def new_surface(size: Tuple[int, int], background: Optional[str] = None) -> Image.Image:
    """Create the destination surface, filled unless ``background`` is unset or transparent."""
    if background and background.lower() != "transparent":
        return Image.new("RGBA", size, parse_color(background))
    return Image.new("RGBA", size, (0, 0, 0, 0))


def destination_box(source_size: Tuple[int, int], geometry: TargetGeometry, fit: str) -> Box:
    """Return ``(x, y, width, height)`` of the drawn image on the surface.

    Only ``contain`` letterboxes; every other fit covers the whole surface.
    """
    if fit != "contain":
        return (0, 0, geometry.width, geometry.height)

    canvas_aspect = geometry.width / geometry.height
    image_aspect = source_size[0] / source_size[1]
    if image_aspect > canvas_aspect:
        height = max(1, round_half_up(geometry.width / image_aspect))
        return (0, (geometry.height - height) // 2, geometry.width, height)
    width = max(1, round_half_up(geometry.height * image_aspect))
    return ((geometry.width - width) // 2, 0, width, geometry.height)


def draw(
    source: Image.Image,
    geometry: TargetGeometry,
    options: OptimizationOptions,
    *,
    filter_mode: str = SETTINGS.filter_mode,
) -> Image.Image:
    surface = new_surface(geometry.size, options.background)
    scratch: List[Image.Image] = []

    def temporary(img: Image.Image) -> Image.Image:
        if img is not source and all(img is not kept for kept in scratch):
            scratch.append(img)
        return img

    try:
        region = temporary(source.crop(geometry.crop.box)) if geometry.crop else source
        x, y, width, height = destination_box(region.size, geometry, options.fit)
        rgba = temporary(region.convert("RGBA"))
        scaled = temporary(rgba.resize((width, height), Image.Resampling.LANCZOS))
        scaled = temporary(filters.apply(scaled, options, filter_mode))
        surface.alpha_composite(scaled, dest=(x, y))
    except (OSError, ValueError) as exc:
        surface.close()
        raise CompositeError(f"Failed to draw {geometry.width}x{geometry.height} image: {exc}") from exc
    finally:
        for img in scratch:
            img.close()
    return surface
