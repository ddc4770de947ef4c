"""Approximate colour statistics and smart-crop detection.

Both operate on a downsampled copy of the source (100x100 for statistics,
200x200 for smart cropping), trading exactness for speed. Sampling is
deterministic, so analysing the same source twice gives the same result.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import List, Sequence, Tuple

from PIL import Image

from ..config import SETTINGS, OptimizerSettings
from ..models import RGB, CropRect, ImageAnalysis, SourceImage
from .geometry import round_half_up

Pixel = Tuple[int, int, int, int]

BUCKET_WIDTH = 32
DOMINANT_COLOR_COUNT = 5


def sample_pixels(img: Image.Image, size: int) -> List[Pixel]:
    grid = img.convert("RGBA").resize((size, size), Image.Resampling.BILINEAR)
    data = grid.tobytes()
    return [tuple(data[offset:offset + 4]) for offset in range(0, len(data), 4)]


def luma(pixel: Sequence[int]) -> float:
    r, g, b = pixel[0], pixel[1], pixel[2]
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255.0


def luma_stddev(values: Sequence[float]) -> float:
    """Population standard deviation, used as the contrast measure."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def _bucket(channel: int) -> int:
    return min(255, round_half_up(channel / BUCKET_WIDTH) * BUCKET_WIDTH)


def dominant_colors(pixels: Sequence[Pixel], count: int = DOMINANT_COLOR_COUNT) -> List[RGB]:
    buckets = Counter((_bucket(r), _bucket(g), _bucket(b)) for r, g, b, _ in pixels)
    # most_common keeps first-seen order for equal counts.
    return [color for color, _ in buckets.most_common(count)]


def _is_gray(pixel: Pixel, tolerance: int) -> bool:
    r, g, b = pixel[0], pixel[1], pixel[2]
    return abs(r - g) < tolerance and abs(g - b) < tolerance and abs(r - b) < tolerance


def analyze(source: SourceImage, settings: OptimizerSettings = SETTINGS) -> ImageAnalysis:
    pixels = sample_pixels(source.image, settings.analysis_size)
    lumas = [luma(pixel) for pixel in pixels]

    gray_count = sum(1 for pixel in pixels if _is_gray(pixel, settings.grayscale_tolerance))
    gray_ratio = gray_count / len(pixels)

    return ImageAnalysis(
        dominant_colors=dominant_colors(pixels),
        brightness=sum(lumas) / len(lumas),
        contrast=luma_stddev(lumas),
        has_transparency=any(pixel[3] < 255 for pixel in pixels),
        color_profile="grayscale" if gray_ratio >= settings.grayscale_ratio else "rgb",
    )


def score_blocks(
    lumas: Sequence[float],
    size: int,
    block: int,
) -> List[Tuple[int, int, float]]:
    """Score overlapping ``block`` squares (half-block stride) by local contrast.

    ``lumas`` is a row-major ``size`` x ``size`` grid. Returns
    ``(x, y, score)`` triples in scan order.
    """
    step = max(1, block // 2)
    scores = []
    for y in range(0, size - block + 1, step):
        for x in range(0, size - block + 1, step):
            values = [
                lumas[row * size + col]
                for row in range(y, y + block)
                for col in range(x, x + block)
            ]
            scores.append((x, y, luma_stddev(values)))
    return scores


def find_focus(source: SourceImage, settings: OptimizerSettings = SETTINGS) -> Tuple[float, float]:
    """Return the centre of the busiest block, in source pixel coordinates."""
    size = settings.smart_crop_size
    block = min(settings.smart_crop_block, size)
    lumas = [luma(pixel) for pixel in sample_pixels(source.image, size)]

    best_x, best_y, best_score = 0, 0, -1.0
    for x, y, score in score_blocks(lumas, size, block):
        # Strict comparison keeps the first block on ties.
        if score > best_score:
            best_x, best_y, best_score = x, y, score

    scale_x = source.width / size
    scale_y = source.height / size
    return ((best_x + block / 2) * scale_x, (best_y + block / 2) * scale_y)


def detect_smart_crop(
    source: SourceImage,
    target_width: int,
    target_height: int,
    settings: OptimizerSettings = SETTINGS,
) -> CropRect:
    """Return a ``target_width`` x ``target_height`` crop centred on the busiest region.

    The crop is clamped to the source; targets larger than the source are
    shrunk to the source size.
    """
    focus_x, focus_y = find_focus(source, settings)
    width = max(1, min(target_width, source.width))
    height = max(1, min(target_height, source.height))
    x = min(source.width - width, max(0, round_half_up(focus_x - width / 2)))
    y = min(source.height - height, max(0, round_half_up(focus_y - height / 2)))
    return CropRect(x, y, width, height)
