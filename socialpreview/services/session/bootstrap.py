"""Interactive login capture that seeds the session store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, ContextManager

from playwright.sync_api import Page, Error as PlaywrightError

from socialpreview.config import AuthSelectors
from socialpreview.core.errors import NotAuthenticated
from socialpreview.core.logger import get_logger
from .store import SessionStore

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from socialpreview.services.browser.playwright_flow import PlaywrightFlow


_LOGGED_IN_JS = """
({ metaSelector, menuSelectors }) => {
  const meta = document.querySelector(metaSelector);
  if (meta && (meta.content || "").trim()) return true;
  return menuSelectors.some((sel) => !!document.querySelector(sel));
}
"""

_USERNAME_JS = """
(metaSelector) => {
  const meta = document.querySelector(metaSelector);
  return ((meta && meta.content) || "").trim();
}
"""


@dataclass(slots=True)
class BootstrapResult:
    username: str
    storage_state: Path


class SessionBootstrap:
    """Open the login page and save the session once the user is logged in.

    With ``interactive=True`` the login wait has no timeout because a human
    is typing credentials and 2FA codes. Harnesses pass ``interactive=False``
    to bound the wait by ``login_timeout_ms``.
    """

    def __init__(
        self,
        flow_factory: Callable[[], ContextManager["PlaywrightFlow"]],
        selectors: AuthSelectors,
        store: SessionStore,
        *,
        interactive: bool = True,
        login_timeout_ms: int = 300_000,
        poll_ms: int = 500,
        announce: Callable[[str], None] | None = None,
        logger=None,
    ) -> None:
        self.flow_factory = flow_factory
        self.selectors = selectors
        self.store = store
        self.interactive = interactive
        self.login_timeout_ms = login_timeout_ms
        self.poll_ms = poll_ms
        self.logger = logger or get_logger("session")
        self.announce = announce or self.logger.info

    def run(self, base_url: str) -> BootstrapResult:
        login_url = f"{base_url}{self.selectors.login_path}"
        with self.flow_factory() as flow:
            page = flow.goto(login_url, verify_session=False, description="login")
            self.announce(
                "Log into the site in the opened browser (including 2FA if enabled). "
                "The session is saved automatically once the login is detected."
            )
            self._wait_until_logged_in(page)
            username = self._username(page)
            path = self.store.save(flow.context)
        self.logger.info("Saved storage state for @%s to: %s", username or "?", path)
        return BootstrapResult(username=username, storage_state=path)

    def _wait_until_logged_in(self, page: Page) -> None:
        timeout = 0 if self.interactive else self.login_timeout_ms
        if self.interactive:
            page.set_default_navigation_timeout(0)
        try:
            page.wait_for_function(
                _LOGGED_IN_JS,
                arg={"metaSelector": self.selectors.user_meta, "menuSelectors": list(self.selectors.user_menu)},
                timeout=timeout,
                polling=self.poll_ms,
            )
        except PlaywrightError as exc:
            if self.interactive:
                raise NotAuthenticated(f"Login page closed before a login was detected: {exc}") from exc
            raise NotAuthenticated(f"Login was not detected within {self.login_timeout_ms} ms") from exc

    def _username(self, page: Page) -> str:
        try:
            return str(page.evaluate(_USERNAME_JS, self.selectors.user_meta) or "").strip()
        except PlaywrightError:
            self.logger.debug("Reading the username failed", exc_info=True)
            return ""
