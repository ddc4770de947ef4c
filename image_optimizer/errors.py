"""Exception hierarchy for the image pipeline.

Every pipeline error records the stage it came from and, when known, the
variant name and the position of the file within a batch, so callers can
report "thumbnail failed at encode stage for image 3 of 5" instead of a
generic failure.
"""

from __future__ import annotations

from typing import Optional


class ImagePipelineError(Exception):
    stage = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        variant: Optional[str] = None,
        index: Optional[int] = None,
        total: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.variant = variant
        self.index = index
        self.total = total

    def with_context(
        self,
        *,
        variant: Optional[str] = None,
        index: Optional[int] = None,
        total: Optional[int] = None,
    ) -> "ImagePipelineError":
        """Fill in missing location details and return ``self`` for re-raising."""
        if variant is not None and self.variant is None:
            self.variant = variant
        if index is not None and self.index is None:
            self.index = index
        if total is not None and self.total is None:
            self.total = total
        return self

    def describe(self) -> str:
        subject = self.variant or "image"
        text = f"{subject} failed at {self.stage} stage"
        if self.index is not None:
            # Indices are zero-based internally, humans count from one.
            text += f" for image {self.index + 1}"
            if self.total is not None:
                text += f" of {self.total}"
        return f"{text}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "stage": self.stage,
            "variant": self.variant,
            "index": self.index,
        }

    def __str__(self) -> str:
        return self.describe()


class DecodeError(ImagePipelineError):
    stage = "decode"


class GeometryError(ImagePipelineError):
    stage = "plan"


class CompositeError(ImagePipelineError):
    stage = "composite"


class EncodeError(ImagePipelineError):
    stage = "encode"


class FetchError(RuntimeError):
    """Raised when a remote source image cannot be downloaded."""
