"""Tests for the remote source helpers."""

import pytest

requests = pytest.importorskip("requests")

from image_optimizer.config import SETTINGS
from image_optimizer.errors import FetchError
from image_optimizer.infrastructure import network
from image_optimizer.infrastructure.network import SourceFetcher, filename_from_url


class FakeResponse:
    def __init__(self, content=b"", status_code=200, headers=None, reason="OK"):
        self.content = content
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} {self.reason}")


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url):
        self.calls.append((method, url))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, timeout=None):
        return self._next("GET", url)

    def head(self, url, timeout=None, allow_redirects=False):
        return self._next("HEAD", url)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(network.time, "sleep", lambda seconds: None)


def _fetcher(*responses):
    session = FakeSession(responses)
    return SourceFetcher(session_factory=lambda: session), session


def test_fetch_returns_image_input():
    fetcher, session = _fetcher(
        FakeResponse(b"png-bytes", headers={"Content-Type": "image/png; charset=binary"})
    )

    upload = fetcher.fetch("https://cdn.example.com/images/cake.png?v=2")

    assert upload.data == b"png-bytes"
    assert upload.filename == "cake.png"
    assert upload.mime_type == "image/png"
    assert session.headers["User-Agent"].startswith("image-optimizer/")


def test_fetch_retries_transient_failures():
    fetcher, session = _fetcher(
        requests.ConnectionError("reset"),
        FakeResponse(b"ok", headers={"Content-Type": "image/jpeg"}),
    )

    assert fetcher.fetch("https://example.com/a.jpg").data == b"ok"
    assert len(session.calls) == 2


def test_fetch_gives_up_after_retries():
    failures = [FakeResponse(status_code=503, reason="Unavailable")] * (SETTINGS.retries + 1)
    fetcher, session = _fetcher(*failures)

    with pytest.raises(FetchError):
        fetcher.fetch("https://example.com/a.jpg")

    assert len(session.calls) == SETTINGS.retries + 1


def test_validate_url_accepts_image_head():
    fetcher, _ = _fetcher(
        FakeResponse(headers={"Content-Type": "image/webp", "Content-Length": "2048"})
    )

    result = fetcher.validate_url("https://example.com/media/hero.webp")

    assert result.is_valid
    assert result.metadata.filename == "hero.webp"
    assert result.metadata.size == 2048


def test_validate_url_reports_status_and_content_type():
    fetcher, _ = _fetcher(
        FakeResponse(status_code=404, reason="Not Found"),
        FakeResponse(headers={"Content-Type": "text/html"}),
    )

    missing = fetcher.validate_url("https://example.com/missing.png")
    html = fetcher.validate_url("https://example.com/page")

    assert missing.errors == ["Image URL returned 404 Not Found"]
    assert html.errors == ["URL does not point to an image (content-type: text/html)"]
    assert html.metadata.filename == "page"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a/b/photo.jpg", "photo.jpg"),
        ("https://example.com/", "image"),
        ("https://example.com", "image"),
    ],
)
def test_filename_from_url(url, expected):
    assert filename_from_url(url) == expected
