from __future__ import annotations

import base64

from PIL import Image, ImageFilter

from ..models import SourceImage
from .compositor import parse_color
from .encoder import encode, flatten


def data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def blur_placeholder(source: SourceImage, width: int = 20, height: int = 20, radius: float = 2.0) -> str:
    """Tiny blurred JPEG preview of ``source`` as a data URL."""
    small = flatten(source.image, "#ffffff").resize((width, height), Image.Resampling.BILINEAR)
    small = small.filter(ImageFilter.GaussianBlur(radius))
    return data_url(encode(small, "jpeg", 0.5), "image/jpeg")


def color_placeholder(color: str = "#f3f4f6", width: int = 400, height: int = 300) -> str:
    surface = Image.new("RGBA", (width, height), parse_color(color))
    return data_url(encode(surface, "png", 1.0), "image/png")
