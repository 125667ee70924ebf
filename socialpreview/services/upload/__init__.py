"""Social preview upload through the repository settings page."""

from .models import CardState, CompletionSignal, UploadOutcome, UploadTarget
from .social_preview import SocialPreviewUploader, UploadTimeouts

__all__ = [
    "CardState",
    "CompletionSignal",
    "SocialPreviewUploader",
    "UploadOutcome",
    "UploadTarget",
    "UploadTimeouts",
]
