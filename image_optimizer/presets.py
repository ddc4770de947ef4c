"""Named option tables exposed to callers."""

from __future__ import annotations

from typing import Dict, Tuple

from .models import OptimizationOptions

OPTIMIZATION_PRESETS: Dict[str, OptimizationOptions] = {
    "avatar": OptimizationOptions(
        max_width=512,
        max_height=512,
        quality=0.9,
        format="webp",
        fit="cover",
        position="center",
    ),
    "thumbnail": OptimizationOptions(
        max_width=300,
        max_height=300,
        quality=0.8,
        format="webp",
        fit="cover",
        position="center",
    ),
    "hero": OptimizationOptions(
        max_width=1920,
        max_height=1080,
        quality=0.85,
        format="webp",
        fit="cover",
        position="center",
    ),
    "blog": OptimizationOptions(
        max_width=1200,
        max_height=800,
        quality=0.8,
        format="webp",
        fit="inside",
        progressive=True,
    ),
    "recipe": OptimizationOptions(
        max_width=800,
        max_height=600,
        quality=0.85,
        format="webp",
        fit="cover",
        position="center",
    ),
    "icon": OptimizationOptions(
        max_width=256,
        max_height=256,
        quality=1.0,
        format="png",
        fit="contain",
        background="transparent",
    ),
}

RESPONSIVE_BREAKPOINTS: Tuple[int, ...] = (320, 640, 768, 1024, 1280, 1920)


def preset_options(name: str, **overrides) -> OptimizationOptions:
    try:
        options = OPTIMIZATION_PRESETS[name]
    except KeyError:
        raise KeyError(f"Unknown preset: {name}") from None
    return options.replace(**overrides) if overrides else options
