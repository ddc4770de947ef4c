import io

import pytest
from PIL import Image


def _encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    """Return a factory producing encoded images of a given size and colour."""

    def factory(size=(64, 48), color=(200, 80, 40), mode="RGB", fmt="PNG") -> bytes:
        return _encode(Image.new(mode, size, color), fmt)

    return factory


@pytest.fixture
def encode_image():
    return _encode
