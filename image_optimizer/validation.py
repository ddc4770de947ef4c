"""Upload checks run before an image enters the pipeline."""

from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import DecodeError
from .models import ImageInput
from .processing.loader import read_dimensions

MB = 1024 * 1024
ASPECT_RATIO_TOLERANCE = 0.1

_SAFE_FILENAME = re.compile(r"^[a-zA-Z0-9._-]+$")
_SUSPICIOUS_EXTENSIONS = (".php", ".js", ".html", ".htm", ".exe", ".bat", ".cmd")
_EXPECTED_MIME_TYPES = {
    ".jpg": ("image/jpeg",),
    ".jpeg": ("image/jpeg",),
    ".png": ("image/png",),
    ".webp": ("image/webp",),
    ".gif": ("image/gif",),
}

_WEB_TYPES = ("image/jpeg", "image/png", "image/webp")
_WEB_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


@dataclass(frozen=True)
class ImageValidationConfig:
    max_file_size: int
    max_width: int
    max_height: int
    min_width: int
    min_height: int
    max_files: int
    allowed_types: Tuple[str, ...] = _WEB_TYPES
    allowed_extensions: Tuple[str, ...] = _WEB_EXTENSIONS
    require_aspect_ratio: Optional[float] = None
    allowed_aspect_ratios: Optional[Tuple[float, ...]] = None


VALIDATION_CONFIGS: Dict[str, ImageValidationConfig] = {
    "avatar": ImageValidationConfig(
        max_file_size=2 * MB,
        max_width=512,
        max_height=512,
        min_width=64,
        min_height=64,
        max_files=1,
        require_aspect_ratio=1.0,
    ),
    "recipe": ImageValidationConfig(
        max_file_size=10 * MB,
        max_width=2048,
        max_height=2048,
        min_width=300,
        min_height=200,
        max_files=10,
        allowed_aspect_ratios=(16 / 9, 4 / 3, 1.0),
    ),
    "blog": ImageValidationConfig(
        max_file_size=8 * MB,
        max_width=1920,
        max_height=1080,
        min_width=400,
        min_height=300,
        max_files=5,
        allowed_aspect_ratios=(16 / 9, 4 / 3),
    ),
    "general": ImageValidationConfig(
        max_file_size=5 * MB,
        max_width=1200,
        max_height=1200,
        min_width=100,
        min_height=100,
        max_files=5,
    ),
}


@dataclass(frozen=True)
class ImageMetadata:
    filename: str
    size: int
    type: Optional[str]
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "size": self.size,
            "type": self.type,
            "width": self.width,
            "height": self.height,
            "aspectRatio": self.aspect_ratio,
        }


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Optional[ImageMetadata] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass
class BatchValidationResult:
    results: List[ValidationResult]
    global_errors: List[str]

    @property
    def is_valid(self) -> bool:
        return not self.global_errors and all(result.is_valid for result in self.results)

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "results": [result.to_dict() for result in self.results],
            "globalErrors": self.global_errors,
        }


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def get_file_extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:] if dot != -1 else ""


def extract_metadata(upload: ImageInput) -> ImageMetadata:
    width, height = read_dimensions(upload.data)
    return ImageMetadata(
        filename=upload.filename,
        size=upload.size,
        type=upload.mime_type,
        width=width,
        height=height,
    )


def _check_dimensions(metadata: ImageMetadata, config: ImageValidationConfig, result: ValidationResult) -> None:
    width, height = metadata.width, metadata.height
    if width > config.max_width:
        result.errors.append(f"Image width ({width}px) exceeds maximum allowed width ({config.max_width}px)")
    if height > config.max_height:
        result.errors.append(f"Image height ({height}px) exceeds maximum allowed height ({config.max_height}px)")
    if width < config.min_width:
        result.errors.append(f"Image width ({width}px) is below minimum required width ({config.min_width}px)")
    if height < config.min_height:
        result.errors.append(f"Image height ({height}px) is below minimum required height ({config.min_height}px)")

    ratio = metadata.aspect_ratio
    if config.require_aspect_ratio is not None:
        if abs(ratio - config.require_aspect_ratio) > ASPECT_RATIO_TOLERANCE:
            result.errors.append(
                f"Image aspect ratio ({ratio:.2f}) does not match required ratio "
                f"({config.require_aspect_ratio:.2f})"
            )
    if config.allowed_aspect_ratios:
        if not any(abs(ratio - allowed) <= ASPECT_RATIO_TOLERANCE for allowed in config.allowed_aspect_ratios):
            allowed = ", ".join(f"{value:.2f}" for value in config.allowed_aspect_ratios)
            result.errors.append(f"Image aspect ratio ({ratio:.2f}) is not one of the allowed ratios: {allowed}")

    if width > config.max_width * 0.8 or height > config.max_height * 0.8:
        result.warnings.append("Large image dimensions may affect loading performance")


def validate_image(upload: ImageInput, config: ImageValidationConfig) -> ValidationResult:
    result = ValidationResult()

    if upload.size > config.max_file_size:
        result.errors.append(
            f"File size ({format_file_size(upload.size)}) exceeds maximum allowed size "
            f"({format_file_size(config.max_file_size)})"
        )
    if upload.mime_type not in config.allowed_types:
        result.errors.append(
            f"File type '{upload.mime_type}' is not allowed. Allowed types: {', '.join(config.allowed_types)}"
        )
    extension = get_file_extension(upload.filename).lower()
    if extension not in config.allowed_extensions:
        result.errors.append(
            f"File extension '{extension}' is not allowed. "
            f"Allowed extensions: {', '.join(config.allowed_extensions)}"
        )
    if len(upload.filename) > 255:
        result.errors.append("Filename is too long (maximum 255 characters)")
    if not _SAFE_FILENAME.match(upload.filename):
        result.errors.append(
            "Filename contains invalid characters. Only letters, numbers, dots, hyphens, "
            "and underscores are allowed"
        )

    try:
        result.metadata = extract_metadata(upload)
    except DecodeError:
        result.errors.append("Failed to read image dimensions. File may be corrupted or not a valid image.")
        return result

    _check_dimensions(result.metadata, config, result)
    if upload.size > config.max_file_size * 0.8:
        result.warnings.append("Large file size may affect loading performance")
    return result


def validate_images(uploads: Sequence[ImageInput], config: ImageValidationConfig) -> BatchValidationResult:
    global_errors: List[str] = []
    if len(uploads) > config.max_files:
        global_errors.append(f"Too many files ({len(uploads)}). Maximum allowed: {config.max_files}")
    if not uploads:
        global_errors.append("No files provided")

    total_size = sum(upload.size for upload in uploads)
    max_total = config.max_file_size * config.max_files
    if total_size > max_total:
        global_errors.append(
            f"Total file size ({format_file_size(total_size)}) exceeds maximum allowed "
            f"({format_file_size(max_total)})"
        )

    return BatchValidationResult(
        results=[validate_image(upload, config) for upload in uploads],
        global_errors=global_errors,
    )


def validate_image_security(filename: str, mime_type: Optional[str]) -> List[str]:
    """Return the reasons ``filename`` looks unsafe; an empty list means it passed."""
    errors = []
    name = filename.lower()

    if any(extension in name for extension in _SUSPICIOUS_EXTENSIONS):
        errors.append("File appears to contain suspicious content")
    if name.count(".") > 1:
        errors.append("File has multiple extensions which may indicate malicious content")

    expected = _EXPECTED_MIME_TYPES.get(get_file_extension(name))
    if expected and mime_type not in expected:
        errors.append(f"MIME type '{mime_type}' does not match file extension '{get_file_extension(name)}'")
    return errors


def generate_safe_filename(original_name: str, prefix: str = "") -> str:
    timestamp = int(time.time() * 1000)
    random_id = secrets.token_hex(3)
    extension = get_file_extension(original_name).lower()

    stem = original_name[: -len(extension)] if extension else original_name
    clean = re.sub(r"[^a-zA-Z0-9]", "-", stem)
    clean = re.sub(r"-+", "-", clean).strip("-").lower()[:50]
    return f"{prefix}{timestamp}-{random_id}-{clean}{extension}"
