from __future__ import annotations

import logging
import posixpath
import time
from typing import Callable, Optional
from urllib.parse import urlsplit

import requests

from ..config import LOGGER_NAME, SETTINGS, OptimizerSettings
from ..errors import FetchError
from ..models import ImageInput
from ..validation import VALIDATION_CONFIGS, ImageMetadata, ValidationResult, format_file_size

log = logging.getLogger(LOGGER_NAME)

SessionFactory = Callable[[], requests.Session]


def filename_from_url(url: str) -> str:
    name = posixpath.basename(urlsplit(url).path)
    return name or "image"


def _content_type(response: requests.Response) -> Optional[str]:
    value = response.headers.get("Content-Type")
    if not value:
        return None
    return value.split(";", 1)[0].strip().lower()


class SourceFetcher:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        settings: OptimizerSettings = SETTINGS,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._settings = settings
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "image-optimizer/1.0"})
        return session

    def fetch(self, url: str) -> ImageInput:
        """Download ``url``, retrying transient failures."""
        last_exception: Exception | None = None
        for attempt in range(1, self._settings.retries + 2):
            try:
                response = self._session.get(url, timeout=self._settings.timeout)
                response.raise_for_status()
                if len(response.content) > self._settings.max_upload_bytes:
                    raise FetchError(
                        f"{url} is {format_file_size(len(response.content))}, above the upload limit"
                    )
                return ImageInput(
                    data=response.content,
                    filename=filename_from_url(url),
                    mime_type=_content_type(response),
                )
            except FetchError:
                raise
            except requests.RequestException as exc:
                last_exception = exc
                log.warning("Fetching %s failed (attempt %d): %s", url, attempt, exc)
                time.sleep(0.4 * attempt)
        raise FetchError(f"Failed to fetch {url}: {last_exception}")

    def validate_url(self, url: str) -> ValidationResult:
        """Check ``url`` with a HEAD request without downloading the image."""
        result = ValidationResult()
        try:
            response = self._session.head(url, timeout=self._settings.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            result.errors.append(f"Failed to validate image URL: {exc}")
            return result

        if not response.ok:
            result.errors.append(f"Image URL returned {response.status_code} {response.reason}")
            return result

        content_type = _content_type(response)
        if not content_type or not content_type.startswith("image/"):
            result.errors.append(f"URL does not point to an image (content-type: {content_type})")

        length = response.headers.get("Content-Length")
        size = int(length) if length and length.isdigit() else 0
        if size > VALIDATION_CONFIGS["general"].max_file_size:
            result.errors.append(f"Image size ({format_file_size(size)}) exceeds maximum allowed size")

        # Dimensions are unknown until the body is downloaded.
        result.metadata = ImageMetadata(
            filename=filename_from_url(url),
            size=size,
            type=content_type,
            width=0,
            height=0,
        )
        return result


FETCHER = SourceFetcher()
