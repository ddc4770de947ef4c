from __future__ import annotations

import io
import logging
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageColor

from ..config import LOGGER_NAME, SETTINGS
from ..errors import EncodeError

log = logging.getLogger(LOGGER_NAME)

AUTO_CANDIDATES: Tuple[str, ...] = ("webp", "jpeg", "png")


def pillow_quality(quality: float) -> int:
    """Map a 0-1 quality onto Pillow's 1-100 scale."""
    return min(100, max(1, int(round(quality * 100))))


def _is_opaque(img: Image.Image) -> bool:
    if img.mode != "RGBA":
        return True
    return img.getchannel("A").getextrema()[0] == 255


def flatten(img: Image.Image, matte: str) -> Image.Image:
    if img.mode != "RGBA":
        return img.convert("RGB")
    background = Image.new("RGBA", img.size, ImageColor.getcolor(matte, "RGBA"))
    background.alpha_composite(img)
    return background.convert("RGB")


def encode(
    surface: Image.Image,
    fmt: str,
    quality: float,
    *,
    lossless: bool = False,
    progressive: bool = False,
    effort: Optional[int] = None,
    matte: Optional[str] = None,
) -> bytes:
    """Serialise ``surface`` as ``fmt``.

    JPEG has no alpha channel, so transparent pixels are flattened onto
    ``matte``. PNG ignores ``quality``. Failures raise :class:`EncodeError`
    rather than falling back to another format.
    """
    buffer = io.BytesIO()
    try:
        if fmt == "jpeg":
            flatten(surface, matte or SETTINGS.jpeg_matte).save(
                buffer,
                "JPEG",
                quality=pillow_quality(quality),
                progressive=progressive,
                optimize=True,
            )
        elif fmt == "png":
            img = surface.convert("RGB") if _is_opaque(surface) else surface
            img.save(buffer, "PNG", optimize=True)
        elif fmt == "webp":
            surface.save(
                buffer,
                "WEBP",
                quality=pillow_quality(quality),
                lossless=lossless,
                method=SETTINGS.webp_effort if effort is None else effort,
            )
        else:
            raise EncodeError(f"Unsupported output format: {fmt}")
    except EncodeError:
        raise
    except (OSError, KeyError, ValueError) as exc:
        raise EncodeError(f"Failed to encode {fmt}: {exc}") from exc

    data = buffer.getvalue()
    if not data:
        raise EncodeError(f"Encoder produced no {fmt} output")
    return data


def encode_best(
    surface: Image.Image,
    quality: float,
    *,
    candidates: Sequence[str] = AUTO_CANDIDATES,
    lossless: bool = False,
    progressive: bool = False,
    effort: Optional[int] = None,
    matte: Optional[str] = None,
) -> Tuple[str, bytes]:
    """Encode ``surface`` in every candidate format and keep the smallest.

    Earlier candidates win ties. A candidate that fails is skipped; the call
    only fails when none of them produce output.
    """
    best: Optional[Tuple[str, bytes]] = None
    for fmt in candidates:
        try:
            data = encode(
                surface,
                fmt,
                quality,
                lossless=lossless,
                progressive=progressive,
                effort=effort,
                matte=matte,
            )
        except EncodeError as exc:
            log.warning("Skipping %s candidate: %s", fmt, exc.message)
            continue
        if best is None or len(data) < len(best[1]):
            best = (fmt, data)

    if best is None:
        raise EncodeError(f"Failed to encode image in any of {', '.join(candidates)}")
    return best
