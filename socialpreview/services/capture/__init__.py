"""README capture within the social preview byte budget."""

from .models import BYTE_BUDGET, QUALITY_LADDER, CaptureRequest, CaptureResult, ImageFormat
from .pipeline import CapturePipeline

__all__ = [
    "BYTE_BUDGET",
    "QUALITY_LADDER",
    "CaptureRequest",
    "CaptureResult",
    "CapturePipeline",
    "ImageFormat",
]
