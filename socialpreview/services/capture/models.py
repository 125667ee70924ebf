"""Domain models for README captures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from socialpreview.core.errors import InvalidInput

#: Social preview images must stay under 1 MB; imposed by the platform.
BYTE_BUDGET = 1_000_000

#: JPEG qualities retried, in order, when a capture is over budget.
QUALITY_LADDER = (70, 60, 50, 40, 30)


class ImageFormat(str, Enum):
    """Screenshot encodings supported by the capture."""

    PNG = "png"
    JPEG = "jpeg"

    @property
    def lossy(self) -> bool:
        return self is ImageFormat.JPEG

    @classmethod
    def parse(cls, value: str | "ImageFormat") -> "ImageFormat":
        if isinstance(value, ImageFormat):
            return value
        normalized = str(value).strip().lower()
        if normalized == "jpg":
            normalized = "jpeg"
        try:
            return cls(normalized)
        except ValueError as exc:
            raise InvalidInput(f"Unsupported image format: {value!r} (expected png or jpeg)") from exc


@dataclass(frozen=True, slots=True)
class CaptureRequest:
    """What to capture and how to encode it."""

    url: str
    selector: str
    width: int
    height: int
    image_format: ImageFormat
    out_path: Path
    quality: int | None = 80
    byte_budget: int = BYTE_BUDGET

    def __post_init__(self) -> None:
        if not self.url:
            raise InvalidInput("Capture URL is empty")
        if not self.selector:
            raise InvalidInput("Content selector is empty")
        for label, value in (("width", self.width), ("height", self.height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidInput(f"Viewport {label} must be a positive integer, got {value!r}")
        if not isinstance(self.image_format, ImageFormat):
            raise InvalidInput(f"Unsupported image format: {self.image_format!r}")
        if self.image_format.lossy:
            if isinstance(self.quality, bool) or not isinstance(self.quality, int) or not 1 <= self.quality <= 100:
                raise InvalidInput(f"JPEG quality must be between 1 and 100, got {self.quality!r}")
        if self.byte_budget != BYTE_BUDGET:
            raise InvalidInput(f"Byte budget is fixed at {BYTE_BUDGET} bytes")

    @property
    def effective_quality(self) -> int | None:
        return self.quality if self.image_format.lossy else None


@dataclass(slots=True)
class CaptureResult:
    """Outcome of ``CapturePipeline.capture``."""

    path: Path
    byte_size: int
    quality: int | None
    width: int
    height: int
    oversized: bool = False
