from __future__ import annotations

import io
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import DecodeError
from ..models import SourceImage

_DECODE_FAILURES = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError)


def _to_eight_bit(img: Image.Image) -> Image.Image:
    """Scale 16-bit samples down to ``L``; ``convert`` would clamp them at 255."""
    if img.mode.startswith("I;16"):
        img = img.convert("I")
    if img.mode == "I":
        return img.point(lambda value: value * (1 / 256)).convert("L")
    if img.mode == "F":
        return img.convert("L")
    return img


def load(data: bytes, *, filename: str = "image", mime_type: Optional[str] = None) -> SourceImage:
    """Decode ``data`` into an RGBA :class:`SourceImage`.

    The decoder handle is closed before returning on both the success and
    the failure path. Only the converted RGBA copy outlives this call.
    """
    if not data:
        raise DecodeError(f"{filename} is empty")

    try:
        with Image.open(io.BytesIO(data)) as decoded:
            decoded.load()
            detected = Image.MIME.get(decoded.format or "")
            # Honour camera orientation before any geometry is planned.
            oriented = ImageOps.exif_transpose(decoded)
            rgba = _to_eight_bit(oriented).convert("RGBA")
    except _DECODE_FAILURES as exc:
        raise DecodeError(f"{filename} is not a decodable image: {exc}") from exc

    if rgba.width <= 0 or rgba.height <= 0:
        rgba.close()
        raise DecodeError(f"{filename} has no pixels")

    return SourceImage(
        image=rgba,
        byte_size=len(data),
        mime_type=mime_type or detected,
        filename=filename,
    )


def read_dimensions(data: bytes) -> Tuple[int, int]:
    """Return ``(width, height)`` from the image header without decoding pixels."""
    try:
        with Image.open(io.BytesIO(data)) as header:
            return header.size
    except _DECODE_FAILURES as exc:
        raise DecodeError(f"Failed to read image dimensions: {exc}") from exc
