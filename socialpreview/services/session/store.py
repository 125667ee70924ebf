"""File-backed Playwright storage state."""

from __future__ import annotations

from pathlib import Path

from playwright.sync_api import BrowserContext

from socialpreview.core.errors import SessionMissing
from socialpreview.core.settings import default_storage_state_path


class SessionStore:
    """Own the path of an opaque storage-state blob.

    Runs only read the blob; it is replaced wholesale by ``init-auth``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_base_url(cls, base_url: str, *, root: Path | None = None) -> "SessionStore":
        return cls(default_storage_state_path(base_url, root=root))

    def exists(self) -> bool:
        return self.path.is_file()

    def require(self) -> Path:
        if not self.exists():
            raise SessionMissing(
                f'Storage state not found at "{self.path}". '
                f"Run: social-preview init-auth --storage-state {self.path}"
            )
        return self.path

    def save(self, context: BrowserContext) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        context.storage_state(path=str(self.path))
        return self.path

    def __repr__(self) -> str:
        return f"SessionStore({str(self.path)!r})"
