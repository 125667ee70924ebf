"""Playwright flow helpers for the social preview automations.

This module provides a structured wrapper to initialise a browser context,
reuse login state, detect login redirects, and capture failure artefacts such
as screenshots and Playwright traces. Every context is acquired through
``with PlaywrightFlow(...) as flow`` so teardown happens on every exit path.
"""

from __future__ import annotations

import time
from pathlib import Path
from urllib.parse import urlparse

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    Error as PlaywrightError,
    sync_playwright,
)

from socialpreview.core.errors import BrowserError, NotAuthenticated
from socialpreview.core.logger import get_logger
from socialpreview.core.settings import ensure_work_dirs


class PlaywrightFlow:
    """Orchestrates Playwright context lifecycle and navigation.

    The flow loads a persisted storage state to reuse authenticated sessions,
    falls back to Edge/Chrome channels when bundled Chromium is missing, and
    records diagnostics when navigation lands on a login page or another
    automation error escapes the ``with`` block.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        storage_state_path: Path | str | None = None,
        viewport: tuple[int, int] | None = None,
        screenshots_dir: Path | None = None,
        trace_dir: Path | None = None,
        login_url_markers: tuple[str, ...] | None = None,
        default_timeout_ms: int = 30_000,
        record_trace: bool = True,
    ) -> None:
        self.logger = get_logger("browser")
        self.headless = headless
        self._storage_state_path = Path(storage_state_path) if storage_state_path else None
        self.viewport = viewport
        work_dirs = ensure_work_dirs()
        self.screenshots_dir = screenshots_dir or work_dirs["shot"]
        self.trace_dir = trace_dir or work_dirs["trace"]
        for directory in (self.screenshots_dir, self.trace_dir):
            directory.mkdir(parents=True, exist_ok=True)

        self.default_timeout_ms = default_timeout_ms
        self.record_trace = record_trace

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._tracing_active = False
        self._browser_channel: str | None = None

        markers = login_url_markers or ("/login", "/session", "/sessions")
        self._login_url_markers = tuple(m.lower().rstrip("/") for m in markers)

    # ------------------------------------------------------------------
    # Lifecycle helpers
    def __enter__(self) -> "PlaywrightFlow":
        self.ensure_ready()
        return self

    def __exit__(self, exc_type, exc, _tb) -> bool:
        if exc is not None:
            self.logger.error("Playwright flow failed: %s", exc)
            if not isinstance(exc, NotAuthenticated):
                self._record_failure_artifacts("exception")
        self.close()
        # Do not suppress exceptions
        return False

    @property
    def context(self) -> BrowserContext:
        self.ensure_ready()
        assert self._context is not None
        return self._context

    def ensure_ready(self) -> Page:
        """Ensure the browser context and page are initialised."""
        if self._page is not None:
            return self._page

        try:
            self._playwright = sync_playwright().start()
        except Exception as exc:  # noqa: BLE001
            raise BrowserError("Playwright is not installed or failed to start; run: python -m playwright install chromium") from exc

        browser = self._launch_browser(self._playwright)
        context = self._new_context(browser)
        page = context.new_page()
        page.set_default_timeout(self.default_timeout_ms)

        self._browser = browser
        self._context = context
        self._page = page
        self._start_trace()
        return page

    def close(self) -> None:
        """Release Playwright resources."""
        if self._context is not None and self._tracing_active:
            try:
                self._context.tracing.stop()
            except PlaywrightError:
                self.logger.debug("Stopping trace failed", exc_info=True)
        if self._context is not None:
            try:
                self._context.close()
            except Exception:  # noqa: BLE001
                self.logger.warning("Closing BrowserContext failed", exc_info=True)
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception:  # noqa: BLE001
                self.logger.warning("Closing Browser failed", exc_info=True)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception:  # noqa: BLE001
                self.logger.warning("Stopping Playwright failed", exc_info=True)

        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None
        self._tracing_active = False
        self._browser_channel = None

    # ------------------------------------------------------------------
    # Navigation helpers
    def goto(
        self,
        url: str,
        *,
        verify_session: bool = True,
        wait_until: str = "domcontentloaded",
        description: str | None = None,
    ) -> Page:
        """Navigate to a URL, waiting only for the given load milestone.

        Args:
            url: Target URL.
            verify_session: Raise ``NotAuthenticated`` if the landing URL is a
                login page.
            wait_until: Playwright load milestone.
            description: Log-friendly description of the navigation target.

        Raises:
            NotAuthenticated: Navigation was redirected to a login page.
            BrowserError: Navigation failed or timed out.
        """

        page = self.ensure_ready()
        friendly = description or url
        self.logger.info("Opening %s: %s", friendly, url)

        try:
            page.goto(url, wait_until=wait_until)
        except PlaywrightTimeoutError as exc:
            self._record_failure_artifacts("goto-timeout")
            raise BrowserError(f"Navigation timed out: {url}") from exc
        except PlaywrightError as exc:  # noqa: BLE001
            self._record_failure_artifacts("goto-error")
            raise BrowserError(f"Navigation failed: {url}") from exc

        if verify_session:
            self._verify_session(page)
        return page

    def is_login_url(self, url: str) -> bool:
        # Only leading path segments count; repository names may contain a marker.
        path = urlparse(url).path.lower()
        return any(path == marker or path.startswith(f"{marker}/") for marker in self._login_url_markers)

    # ------------------------------------------------------------------
    # Internal helpers
    def _launch_browser(self, playwright: Playwright) -> Browser:
        attempts: list[tuple[str | None, str]] = [
            (None, "chromium"),
            ("msedge", "msedge"),
            ("chrome", "chrome"),
        ]
        last_exc: PlaywrightError | None = None
        for channel, label in attempts:
            try:
                if channel is None:
                    browser = playwright.chromium.launch(headless=self.headless)
                else:
                    browser = playwright.chromium.launch(headless=self.headless, channel=channel)
                self._browser_channel = label
                self.logger.debug("Launched browser channel=%s headless=%s", label, self.headless)
                return browser
            except PlaywrightError as exc:
                last_exc = exc
                continue
        raise BrowserError(
            "Unable to launch Chromium; run python -m playwright install chromium or install Edge/Chrome"
        ) from last_exc

    def _new_context(self, browser: Browser) -> BrowserContext:
        storage_state: str | None = None
        if self._storage_state_path and self._storage_state_path.exists():
            storage_state = str(self._storage_state_path)
            self.logger.info("Loading storage state: %s", storage_state)
        elif self._storage_state_path is not None:
            self.logger.warning("Storage state not found, continuing without a session: %s", self._storage_state_path)
        viewport = None
        if self.viewport is not None:
            width, height = self.viewport
            viewport = {"width": width, "height": height}
        context = browser.new_context(storage_state=storage_state, viewport=viewport)
        context.set_default_timeout(self.default_timeout_ms)
        return context

    def _start_trace(self) -> None:
        if not self.record_trace or self._context is None:
            return
        try:
            self._context.tracing.start(screenshots=True, snapshots=True, sources=False)
            self._tracing_active = True
        except PlaywrightError:
            self.logger.debug("Tracing unavailable", exc_info=True)
            self._tracing_active = False

    def _verify_session(self, page: Page) -> None:
        if self.is_login_url(page.url):
            message = f"Not logged in (redirected to {page.url})."
            self.logger.warning(message)
            self._record_failure_artifacts("not-authenticated")
            raise NotAuthenticated(message)

    def _record_failure_artifacts(self, label: str) -> None:
        timestamp = time.strftime("%Y%m%d-%H%M%S")
        page = self._page
        context = self._context

        if page is not None:
            snap_path = self.screenshots_dir / f"{label}_{timestamp}.png"
            try:
                page.screenshot(path=str(snap_path), full_page=True)
                self.logger.info("Failure screenshot saved: %s", snap_path)
            except PlaywrightError:
                self.logger.warning("Failure screenshot failed", exc_info=True)

        if context is not None and self._tracing_active:
            trace_path = self.trace_dir / f"{label}_{timestamp}.zip"
            try:
                context.tracing.stop(path=str(trace_path))
                self.logger.info("Playwright trace exported: %s", trace_path)
            except PlaywrightError:
                self.logger.warning("Trace export failed", exc_info=True)
            finally:
                self._tracing_active = False


__all__ = ["PlaywrightFlow"]
