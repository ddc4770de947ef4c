from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from . import compositor, encoder, geometry
from .analysis import find_focus
from .loader import load
from ..config import LOGGER_NAME, SETTINGS, OptimizerSettings
from ..errors import ImagePipelineError
from ..models import (
    ImageInput,
    ImageSource,
    OptimizationOptions,
    OptimizedImage,
    SourceImage,
    VariantSet,
    as_input,
)
from ..presets import RESPONSIVE_BREAKPOINTS, preset_options

log = logging.getLogger(LOGGER_NAME)

ProgressCallback = Callable[[float, str], None]


def load_input(image: ImageSource) -> SourceImage:
    upload = as_input(image)
    return load(upload.data, filename=upload.filename, mime_type=upload.mime_type)


def render_variant(
    source: SourceImage,
    options: OptimizationOptions,
    settings: OptimizerSettings = SETTINGS,
) -> OptimizedImage:
    """Plan, draw and encode one variant of an already decoded source."""
    focus = None
    if options.fit == "cover" and options.position == "smart":
        focus = find_focus(source, settings)
    target = geometry.plan(source.width, source.height, options, focus)

    surface = compositor.draw(source.image, target, options, filter_mode=settings.filter_mode)
    try:
        if options.format == "auto":
            fmt, data = encoder.encode_best(
                surface,
                options.quality,
                lossless=options.lossless,
                progressive=options.progressive,
                effort=options.effort,
            )
        else:
            fmt = options.format
            data = encoder.encode(
                surface,
                fmt,
                options.quality,
                lossless=options.lossless,
                progressive=options.progressive,
                effort=options.effort,
            )
    finally:
        surface.close()

    return OptimizedImage(
        data=data,
        width=target.width,
        height=target.height,
        format=fmt,
        size=len(data),
        quality=options.quality,
    )


def optimize_image(
    image: ImageSource,
    options: Optional[OptimizationOptions] = None,
    settings: OptimizerSettings = SETTINGS,
) -> OptimizedImage:
    options = options or OptimizationOptions(
        quality=settings.default_quality,
        format=settings.default_format,
    )
    with load_input(image) as source:
        return render_variant(source, options, settings)


def _render_all(
    source: SourceImage,
    variants: Mapping[str, OptimizationOptions],
    settings: OptimizerSettings,
) -> VariantSet:
    result = VariantSet()
    for name, options in variants.items():
        try:
            result.variants[name] = render_variant(source, options, settings)
        except ImagePipelineError as exc:
            log.error("Failed to process variant %s: %s", name, exc.message)
            result.errors[name] = exc.with_context(variant=name)
    return result


def process_variants(
    image: ImageSource,
    variants: Mapping[str, OptimizationOptions],
    settings: OptimizerSettings = SETTINGS,
) -> VariantSet:
    """Render every named variant from a single decode.

    A decode failure raises immediately. Failures of individual variants are
    recorded in :attr:`VariantSet.errors` and the remaining variants are still
    produced, in the iteration order of ``variants``.
    """
    with load_input(image) as source:
        return _render_all(source, variants, settings)


def responsive_options(
    original_width: int,
    original_height: int,
    breakpoints: Iterable[int] = RESPONSIVE_BREAKPOINTS,
    *,
    quality: float = 0.8,
    fmt: str = "webp",
) -> dict:
    """Options for each breakpoint narrower than the source, keyed ``w<width>``.

    Breakpoints at or above the original width are skipped; heights follow the
    original aspect ratio.
    """
    aspect = original_width / original_height
    options = {}
    for width in sorted(set(breakpoints)):
        if width <= 0 or width >= original_width:
            continue
        options[f"w{width}"] = OptimizationOptions(
            max_width=width,
            max_height=max(1, geometry.round_half_up(width / aspect)),
            quality=quality,
            format=fmt,
            fit="fill",
        )
    return options


def generate_responsive_variants(
    image: ImageSource,
    breakpoints: Sequence[int] = RESPONSIVE_BREAKPOINTS,
    *,
    quality: float = 0.8,
    fmt: str = "webp",
    settings: OptimizerSettings = SETTINGS,
) -> VariantSet:
    with load_input(image) as source:
        requested = responsive_options(source.width, source.height, breakpoints, quality=quality, fmt=fmt)
        return _render_all(source, requested, settings)


def auto_optimize_format(
    image: ImageSource,
    options: Optional[OptimizationOptions] = None,
    settings: OptimizerSettings = SETTINGS,
) -> OptimizedImage:
    """Optimize ``image`` in whichever of WebP, JPEG and PNG comes out smallest."""
    options = (options or OptimizationOptions(quality=settings.default_quality)).replace(format="auto")
    return optimize_image(image, options, settings)


def apply_preset(image: ImageSource, name: str, settings: OptimizerSettings = SETTINGS) -> OptimizedImage:
    return optimize_image(image, preset_options(name), settings)


def batch_process(
    images: Sequence[ImageSource],
    options: Optional[OptimizationOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    settings: OptimizerSettings = SETTINGS,
) -> List[OptimizedImage]:
    """Optimize each image in turn, skipping the ones that fail.

    Files are processed one at a time so a single decoded raster is live.
    ``on_progress`` receives ``(percent, label)`` before each file and
    ``(100, "")`` once the batch is done.
    """
    total = len(images)
    results: List[OptimizedImage] = []

    for index, image in enumerate(images):
        upload: ImageInput = as_input(image, filename=f"image-{index + 1}")
        if on_progress:
            on_progress(index / total * 100, upload.filename)
        try:
            results.append(optimize_image(upload, options, settings))
        except ImagePipelineError as exc:
            exc.with_context(variant=upload.filename, index=index, total=total)
            log.error("%s", exc.describe())

    if on_progress:
        on_progress(100.0, "")
    return results
