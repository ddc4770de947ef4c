from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from PIL import Image

from .errors import ImagePipelineError

RGB = Tuple[int, int, int]

FIT_MODES = ("cover", "contain", "fill", "inside", "outside")
FORMATS = ("jpeg", "png", "webp", "auto")
POSITIONS = (
    "center",
    "top",
    "bottom",
    "left",
    "right",
    "left top",
    "right top",
    "left bottom",
    "right bottom",
    "smart",
)

FORMAT_MIME_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def normalize_position(position: str) -> str:
    """Return the canonical spelling for ``position`` ("top-left" -> "left top")."""
    words = position.replace("-", " ").lower().split()
    horizontal = [word for word in words if word in ("left", "right")]
    vertical = [word for word in words if word in ("top", "bottom")]
    if len(horizontal) == 1 and len(vertical) == 1 and len(words) == 2:
        return " ".join(horizontal + vertical)
    return " ".join(words)


@dataclass(frozen=True)
class OptimizationOptions:
    quality: float = 0.8
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    format: str = "jpeg"
    fit: str = "inside"
    position: str = "center"
    progressive: bool = False
    lossless: bool = False
    effort: Optional[int] = None
    background: Optional[str] = None
    blur: float = 0.0
    sharpen: float = 0.0
    gamma: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"quality must be between 0 and 1, got {self.quality}")
        if self.format not in FORMATS:
            raise ValueError(f"Unsupported format: {self.format}")
        if self.fit not in FIT_MODES:
            raise ValueError(f"Unsupported fit mode: {self.fit}")
        position = normalize_position(self.position)
        if position not in POSITIONS:
            raise ValueError(f"Unsupported position: {self.position}")
        object.__setattr__(self, "position", position)
        if self.effort is not None and not 0 <= self.effort <= 6:
            raise ValueError(f"effort must be between 0 and 6, got {self.effort}")
        if self.blur < 0 or self.sharpen < 0:
            raise ValueError("blur and sharpen must not be negative")
        if self.gamma <= 0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")

    def replace(self, **changes) -> "OptimizationOptions":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ImageInput:
    """Raw upload handed to the pipeline by a caller."""

    data: bytes
    filename: str = "image"
    mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


ImageSource = Union[ImageInput, bytes]


def as_input(image: ImageSource, filename: str = "image") -> ImageInput:
    if isinstance(image, ImageInput):
        return image
    if isinstance(image, (bytes, bytearray, memoryview)):
        return ImageInput(bytes(image), filename=filename)
    raise TypeError(f"Expected bytes or ImageInput, got {type(image).__name__}")


@dataclass
class SourceImage:
    """Decoded RGBA raster plus the metadata of the upload it came from.

    Use as a context manager so the pixel buffer is released once every
    variant for the input has been produced.
    """

    image: Image.Image
    byte_size: int
    mime_type: Optional[str]
    filename: str

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def aspect_ratio(self) -> float:
        return self.image.width / self.image.height

    def close(self) -> None:
        self.image.close()

    def __enter__(self) -> "SourceImage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class TargetGeometry:
    width: int
    height: int
    crop: Optional[CropRect] = None

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class OptimizedImage:
    data: bytes
    width: int
    height: int
    format: str
    size: int
    quality: float

    @property
    def mime_type(self) -> str:
        return FORMAT_MIME_TYPES[self.format]

    def describe(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "format": self.format,
            "size": self.size,
            "quality": self.quality,
        }


@dataclass(frozen=True)
class ImageAnalysis:
    dominant_colors: List[RGB]
    brightness: float
    contrast: float
    has_transparency: bool
    color_profile: str

    @property
    def css_colors(self) -> List[str]:
        return [f"rgb({r}, {g}, {b})" for r, g, b in self.dominant_colors]

    @property
    def hex_colors(self) -> List[str]:
        return ["#{:02x}{:02x}{:02x}".format(*rgb) for rgb in self.dominant_colors]

    def to_dict(self) -> dict:
        return {
            "dominantColors": self.css_colors,
            "brightness": self.brightness,
            "contrast": self.contrast,
            "hasTransparency": self.has_transparency,
            "colorProfile": self.color_profile,
        }


@dataclass
class VariantSet:
    """Named variants produced from one input.

    Variants that failed are kept in ``errors`` and never displace the
    entries that completed.
    """

    variants: Dict[str, OptimizedImage] = field(default_factory=dict)
    errors: Dict[str, ImagePipelineError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        for error in self.errors.values():
            raise error

    def __getitem__(self, name: str) -> OptimizedImage:
        return self.variants[name]

    def __contains__(self, name: object) -> bool:
        return name in self.variants

    def __iter__(self) -> Iterator[str]:
        return iter(self.variants)

    def __len__(self) -> int:
        return len(self.variants)

    def names(self) -> List[str]:
        return list(self.variants)
