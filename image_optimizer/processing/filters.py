from __future__ import annotations

from typing import Callable

from PIL import Image, ImageEnhance, ImageFilter

from ..config import SETTINGS
from ..models import OptimizationOptions

FILTER_MODES = ("approximate", "exact")


def apply_gamma(img: Image.Image, gamma: float) -> Image.Image:
    if abs(gamma - 1.0) < 1e-3:
        return img
    inv = 1.0 / gamma
    lut = [
        min(255, max(0, int(((value / 255.0) ** inv) * 255 + 0.5)))
        for value in range(256)
    ]
    return img.point(lut * 3)


def _on_color_bands(img: Image.Image, operation: Callable[[Image.Image], Image.Image]) -> Image.Image:
    """Run ``operation`` on the RGB bands and carry the alpha band over untouched."""
    if img.mode != "RGBA":
        return operation(img.convert("RGB"))
    alpha = img.getchannel("A")
    result = operation(img.convert("RGB")).convert("RGBA")
    result.putalpha(alpha)
    return result


def blur(img: Image.Image, radius: float) -> Image.Image:
    if radius <= 0:
        return img
    return img.filter(ImageFilter.GaussianBlur(radius=radius))


def sharpen(img: Image.Image, amount: float, mode: str = "approximate") -> Image.Image:
    if amount <= 0:
        return img
    if mode == "exact":
        percent = int(round(amount * 100))
        return _on_color_bands(
            img,
            lambda rgb: rgb.filter(ImageFilter.UnsharpMask(radius=2, percent=percent, threshold=3)),
        )
    # Contrast boost stands in for sharpening.
    return _on_color_bands(img, lambda rgb: ImageEnhance.Contrast(rgb).enhance(1.0 + amount))


def gamma_correct(img: Image.Image, gamma: float, mode: str = "approximate") -> Image.Image:
    if abs(gamma - 1.0) < 1e-3:
        return img
    if mode == "exact":
        # Exponent of gamma, so gamma > 1 darkens in both modes.
        return _on_color_bands(img, lambda rgb: apply_gamma(rgb, 1.0 / gamma))
    # Brightness multiplier of gamma^-1 stands in for a gamma curve.
    return _on_color_bands(img, lambda rgb: ImageEnhance.Brightness(rgb).enhance(1.0 / gamma))


def apply(img: Image.Image, options: OptimizationOptions, mode: str = SETTINGS.filter_mode) -> Image.Image:
    """Apply blur, then sharpen, then gamma as requested by ``options``."""
    if mode not in FILTER_MODES:
        raise ValueError(f"Unsupported filter mode: {mode}")
    img = blur(img, options.blur)
    img = sharpen(img, options.sharpen, mode)
    return gamma_correct(img, options.gamma, mode)
