from __future__ import annotations

import io

from flask import send_file

from .models import OptimizedImage
from .processing.placeholder import data_url


def send_image(result: OptimizedImage):
    response = send_file(io.BytesIO(result.data), mimetype=result.mime_type)
    response.headers["X-Image-Width"] = str(result.width)
    response.headers["X-Image-Height"] = str(result.height)
    response.headers["X-Image-Format"] = result.format
    return response


def describe_with_data(result: OptimizedImage) -> dict:
    payload = result.describe()
    payload["dataUrl"] = data_url(result.data, result.mime_type)
    return payload
