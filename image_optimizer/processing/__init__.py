"""Image optimization pipeline components."""

from .analysis import analyze, detect_smart_crop, find_focus
from .compositor import draw
from .encoder import encode, encode_best
from .filters import apply as apply_filters
from .geometry import plan
from .loader import load, read_dimensions
from .placeholder import blur_placeholder, color_placeholder
from .pipeline import (
    apply_preset,
    auto_optimize_format,
    batch_process,
    generate_responsive_variants,
    optimize_image,
    process_variants,
    render_variant,
)

__all__ = [
    "analyze",
    "detect_smart_crop",
    "find_focus",
    "draw",
    "encode",
    "encode_best",
    "apply_filters",
    "plan",
    "load",
    "read_dimensions",
    "blur_placeholder",
    "color_placeholder",
    "apply_preset",
    "auto_optimize_format",
    "batch_process",
    "generate_responsive_variants",
    "optimize_image",
    "process_variants",
    "render_variant",
]
