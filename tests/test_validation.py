import re

import pytest

from image_optimizer.models import ImageInput
from image_optimizer.validation import (
    MB,
    VALIDATION_CONFIGS,
    format_file_size,
    generate_safe_filename,
    get_file_extension,
    validate_image,
    validate_image_security,
    validate_images,
)


def _upload(data, filename="pasta.jpg", mime_type="image/jpeg"):
    return ImageInput(data=data, filename=filename, mime_type=mime_type)


def test_recipe_photo_passes(image_bytes):
    result = validate_image(_upload(image_bytes((800, 600), fmt="JPEG")), VALIDATION_CONFIGS["recipe"])

    assert result.is_valid, result.errors
    assert result.warnings == []
    assert result.metadata.width == 800
    assert result.metadata.aspect_ratio == pytest.approx(4 / 3)


def test_dimension_and_ratio_errors_are_reported(image_bytes):
    result = validate_image(_upload(image_bytes((250, 100), fmt="JPEG")), VALIDATION_CONFIGS["recipe"])

    assert not result.is_valid
    assert any("below minimum required width" in error for error in result.errors)
    assert any("below minimum required height" in error for error in result.errors)
    assert any("not one of the allowed ratios" in error for error in result.errors)


def test_avatar_requires_square(image_bytes):
    result = validate_image(_upload(image_bytes((300, 200), fmt="JPEG")), VALIDATION_CONFIGS["avatar"])

    assert any("does not match required ratio" in error for error in result.errors)


def test_type_extension_and_filename_checks(image_bytes):
    upload = _upload(image_bytes((200, 200), fmt="GIF"), filename="my photo.gif", mime_type="image/gif")

    result = validate_image(upload, VALIDATION_CONFIGS["general"])

    assert any("File type 'image/gif' is not allowed" in error for error in result.errors)
    assert any("File extension '.gif' is not allowed" in error for error in result.errors)
    assert any("invalid characters" in error for error in result.errors)


def test_corrupt_file_reports_unreadable_dimensions():
    result = validate_image(_upload(b"garbage"), VALIDATION_CONFIGS["general"])

    assert result.metadata is None
    assert result.errors == ["Failed to read image dimensions. File may be corrupted or not a valid image."]


def test_large_file_gets_size_error_and_warning(image_bytes):
    data = image_bytes((200, 200), fmt="JPEG")
    padded = _upload(data + b"\x00" * (3 * MB))

    result = validate_image(padded, VALIDATION_CONFIGS["avatar"])

    assert any("exceeds maximum allowed size (2 MB)" in error for error in result.errors)
    assert "Large file size may affect loading performance" in result.warnings


def test_validate_images_checks_count_and_emptiness(image_bytes):
    uploads = [_upload(image_bytes((200, 200), fmt="JPEG"), filename="a.jpg")] * 2

    too_many = validate_images(uploads, VALIDATION_CONFIGS["avatar"])
    empty = validate_images([], VALIDATION_CONFIGS["avatar"])

    assert "Too many files (2). Maximum allowed: 1" in too_many.global_errors
    assert len(too_many.results) == 2
    assert not too_many.is_valid
    assert empty.global_errors == ["No files provided"]


def test_security_checks():
    assert validate_image_security("cake.png", "image/png") == []

    errors = validate_image_security("shell.php.jpg", "image/jpeg")
    assert "File appears to contain suspicious content" in errors
    assert "File has multiple extensions which may indicate malicious content" in errors

    assert validate_image_security("cake.png", "image/jpeg") == [
        "MIME type 'image/jpeg' does not match file extension '.png'"
    ]


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (2 * MB, "2 MB"), (1234567, "1.18 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_get_file_extension():
    assert get_file_extension("archive.tar.gz") == ".gz"
    assert get_file_extension("README") == ""


def test_generate_safe_filename():
    name = generate_safe_filename("My Grandma's Pie!!.JPG", prefix="recipe-")

    assert re.fullmatch(r"recipe-\d+-[0-9a-f]{6}-my-grandma-s-pie\.jpg", name)
