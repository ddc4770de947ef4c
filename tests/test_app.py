import io

import pytest
from PIL import Image

pytest.importorskip("flask")

from image_optimizer.app import create_app, options_from_args, InvalidRequest
from image_optimizer.models import ImageInput


class StubFetcher:
    def __init__(self, upload):
        self.upload = upload
        self.urls = []

    def fetch(self, url):
        self.urls.append(url)
        return self.upload


@pytest.fixture
def png(image_bytes):
    return image_bytes((120, 80), color=(20, 140, 60))


@pytest.fixture
def fetcher(png):
    return StubFetcher(ImageInput(png, filename="remote.png", mime_type="image/png"))


@pytest.fixture
def client(fetcher):
    app = create_app(fetcher=fetcher)
    app.config["TESTING"] = True
    return app.test_client()


def _file(data, name="photo.png", mime="image/png"):
    return (io.BytesIO(data), name, mime)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["ok"] is True


def test_presets_lists_the_table(client):
    presets = client.get("/presets").get_json()

    assert set(presets) == {"avatar", "thumbnail", "hero", "blog", "recipe", "icon"}
    assert presets["thumbnail"]["max_width"] == 300


def test_optimize_upload_returns_image(client, png):
    response = client.post(
        "/optimize",
        data={"file": _file(png), "width": "60", "height": "60", "fit": "cover", "format": "png"},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.headers["X-Image-Width"] == "60"
    assert Image.open(io.BytesIO(response.data)).size == (60, 60)


def test_optimize_from_url_uses_fetcher(client, fetcher):
    response = client.post("/optimize", data={"url": "https://example.com/remote.png", "format": "jpeg"})

    assert response.status_code == 200
    assert response.mimetype == "image/jpeg"
    assert fetcher.urls == ["https://example.com/remote.png"]


def test_optimize_rejects_corrupt_upload(client):
    response = client.post(
        "/optimize",
        data={"file": _file(b"nope")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert response.get_json()["stage"] == "decode"


def test_optimize_rejects_invalid_options(client, png):
    response = client.post(
        "/optimize",
        data={"file": _file(png), "fit": "stretch"},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert "fit" in response.get_json()["error"]


def test_optimize_runs_validation_when_requested(client, png):
    response = client.post(
        "/optimize",
        data={"file": _file(png), "validate": "avatar"},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert response.get_json()["isValid"] is False


def test_variants_returns_data_urls(client, png):
    response = client.post(
        "/variants",
        data={"file": _file(png), "presets": "icon,thumbnail"},
        content_type="multipart/form-data",
    )

    payload = response.get_json()
    assert response.status_code == 200
    assert payload["errors"] == {}
    assert payload["variants"]["icon"]["dataUrl"].startswith("data:image/png;base64,")
    assert payload["variants"]["thumbnail"]["width"] == 300


def test_variants_rejects_unknown_preset(client, png):
    response = client.post(
        "/variants",
        data={"file": _file(png), "presets": "poster"},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400


def test_responsive_endpoint(client, png):
    response = client.post(
        "/responsive",
        data={"file": _file(png), "breakpoints": "40,100,200"},
        content_type="multipart/form-data",
    )

    assert sorted(response.get_json()["variants"]) == ["w100", "w40"]


def test_analyze_endpoint(client, png):
    response = client.post("/analyze", data={"file": _file(png)}, content_type="multipart/form-data")

    payload = response.get_json()
    assert payload["colorProfile"] == "rgb"
    assert payload["hasTransparency"] is False
    assert (payload["width"], payload["height"]) == (120, 80)
    assert payload["placeholders"]["blur"].startswith("data:image/jpeg;base64,")


def test_batch_endpoint_skips_corrupt_files(client, png):
    response = client.post(
        "/batch",
        data={"files": [_file(png, "a.png"), _file(b"broken", "b.png"), _file(png, "c.png")], "format": "png"},
        content_type="multipart/form-data",
    )

    payload = response.get_json()
    assert response.status_code == 200
    assert len(payload["results"]) == 2
    assert payload["failed"] == 1


def test_validate_endpoint(client, image_bytes):
    response = client.post(
        "/validate",
        data={"files": [_file(image_bytes((800, 600), fmt="JPEG"), "pasta.jpg", "image/jpeg")], "validate": "recipe"},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json()["isValid"] is True


def test_options_from_args_merges_preset_and_overrides():
    options = options_from_args({"preset": "hero", "quality": "0.5", "position": "top"})

    assert options.max_width == 1920
    assert options.quality == 0.5
    assert options.position == "top"


def test_options_from_args_rejects_bad_numbers():
    with pytest.raises(InvalidRequest):
        options_from_args({"width": "wide"})
