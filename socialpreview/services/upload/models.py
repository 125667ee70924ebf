"""Domain models for the social preview upload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from socialpreview.core.errors import InvalidInput


class CompletionSignal(str, Enum):
    """Which detection path confirmed the upload first."""

    NETWORK_RESPONSE = "networkResponse"
    ID_POLL = "idPoll"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class UploadTarget:
    settings_url: str
    file_path: Path

    def validate(self) -> None:
        path = Path(self.file_path)
        if not path.is_file():
            raise InvalidInput(f"Image file not found: {path}")
        if path.stat().st_size == 0:
            raise InvalidInput(f"Image file is empty: {path}")


@dataclass(frozen=True, slots=True)
class CardState:
    """Current social preview card, read from the hidden identifier field.

    An empty ``prior_id`` means no image is attached (add mode); otherwise the
    upload replaces the existing image.
    """

    prior_id: str = ""

    @classmethod
    def from_value(cls, value: str | None) -> "CardState":
        return cls((value or "").strip())

    @property
    def absent(self) -> bool:
        return not self.prior_id

    @property
    def mode(self) -> str:
        return "add" if self.absent else "replace"


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    new_id: str
    prior_id: str
    id_changed: bool
    signal: CompletionSignal
    controls: str | None = None
    response_url: str | None = None

    @property
    def unchanged(self) -> bool:
        """True when an existing image id survived the upload untouched."""

        return bool(self.prior_id) and not self.id_changed and self.new_id == self.prior_id
