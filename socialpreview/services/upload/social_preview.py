"""Playwright-based uploader for the repository social preview image.

The settings page is not under our control and presents different shapes
depending on whether an image is already attached, so every step either waits
on an explicit signal with a bound or is best-effort with a later
authoritative check. The identifier field is always read before any click,
and the upload response listener is always armed before the file is handed
over.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from playwright.sync_api import (
    Locator,
    Page,
    Response,
    TimeoutError as PlaywrightTimeoutError,
    Error as PlaywrightError,
)

from socialpreview.config import SettingsSelectors
from socialpreview.core.errors import (
    SectionNotFound,
    UploadControlsNotFound,
    UploadError,
    UploadUnconfirmed,
)
from socialpreview.core.logger import get_logger
from socialpreview.services.browser.signals import race_signals
from .models import CardState, CompletionSignal, UploadOutcome, UploadTarget

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from socialpreview.services.browser.playwright_flow import PlaywrightFlow


FILE_INPUT = "file_input"
UPLOAD_MENU_ITEM = "upload_menu_item"

_ID_CHANGED_JS = """
({ selector, prevId }) => {
  const input = document.querySelector(selector);
  if (!input) return false;
  const v = (input.value || "").trim();
  if (!v) return false;
  if (!prevId) return true;
  return v !== prevId;
}
"""

_ID_PRESENT_JS = """
(selector) => {
  const input = document.querySelector(selector);
  return !!((input && input.value) || "").trim();
}
"""

_CONTAINER_SHOWN_JS = """
(selector) => {
  const el = document.querySelector(selector);
  return !!el && el.hidden === false;
}
"""


@dataclass(slots=True)
class UploadTimeouts:
    """Bounds for every wait in the upload flow, in milliseconds."""

    section_ms: int = 60_000
    controls_ms: int = 30_000
    response_ms: int = 20_000
    id_poll_ms: int = 20_000
    verify_ms: int = 20_000
    container_ms: int = 30_000
    poll_ms: int = 250


@dataclass(slots=True)
class SettingsLocators:
    """Lazily evaluated locators for the social preview section."""

    heading: Locator
    edit_button: Locator
    section_edit_button: Locator
    file_input: Locator
    upload_menu_item: Locator
    image_id: Locator
    image_container: Locator

    @classmethod
    def build(cls, page: Page, selectors: SettingsSelectors) -> "SettingsLocators":
        return cls(
            heading=page.locator(selectors.section_heading).first,
            edit_button=page.locator(selectors.edit_button),
            section_edit_button=page.locator(selectors.section_edit_button),
            file_input=page.locator(selectors.file_input),
            upload_menu_item=page.get_by_text(re.compile(selectors.upload_text, re.IGNORECASE)).first,
            image_id=page.locator(selectors.image_id),
            image_container=page.locator(selectors.image_container),
        )


class SocialPreviewUploader:
    """Submit an image through the settings page and confirm it was attached."""

    def __init__(
        self,
        flow: "PlaywrightFlow",
        selectors: SettingsSelectors,
        *,
        timeouts: UploadTimeouts | None = None,
        logger=None,
    ) -> None:
        self.flow = flow
        self.selectors = selectors
        self.timeouts = timeouts or UploadTimeouts()
        self.logger = logger or get_logger("upload")

    # ------------------------------------------------------------------
    def upload(self, target: UploadTarget) -> UploadOutcome:
        target.validate()

        page = self._open_settings(target.settings_url)
        locators = SettingsLocators.build(page, self.selectors)
        self._wait_for_section(locators)

        state = self.detect_card_state(locators)
        self.logger.info("Social preview mode: %s", state.mode)

        self._open_editor(locators)
        self._wait_for_controls(page, locators)

        controls, response_url = self._submit(page, locators, Path(target.file_path))
        signal, id_change_seen = self._await_completion(page, state, response_url)
        new_id = self._verify(page, locators)

        outcome = UploadOutcome(
            new_id=new_id,
            prior_id=state.prior_id,
            id_changed=id_change_seen or new_id != state.prior_id,
            signal=signal,
            controls=controls,
            response_url=response_url,
        )
        if outcome.unchanged:
            self.logger.warning("Upload finished but image id is unchanged (likely same image content).")
        self.logger.info("Upload complete. New image id: %s (signal=%s)", new_id, signal.value)
        return outcome

    def detect_card_state(self, locators: SettingsLocators) -> CardState:
        """Derive add/replace mode from the hidden identifier field."""

        return CardState.from_value(self._read_image_id(locators))

    # ------------------------------------------------------------------
    def _open_settings(self, url: str) -> Page:
        return self.flow.goto(url, description="settings")

    def _wait_for_section(self, locators: SettingsLocators) -> None:
        self.logger.info("Waiting for Social preview section...")
        try:
            locators.heading.wait_for(state="attached", timeout=self.timeouts.section_ms)
        except PlaywrightTimeoutError as exc:
            raise SectionNotFound(
                f"Social preview section not found after {self.timeouts.section_ms} ms"
            ) from exc
        self.logger.info("Social preview section found.")
        try:
            locators.heading.scroll_into_view_if_needed()
        except PlaywrightError:
            self.logger.debug("Scrolling to the section heading failed", exc_info=True)

    def _open_editor(self, locators: SettingsLocators) -> str | None:
        candidates = (
            ("#edit-social-preview-button", locators.edit_button),
            ("nearby Edit control", locators.section_edit_button),
        )
        for label, locator in candidates:
            if not self._present(locator):
                continue
            self.logger.info("Opening Social preview edit menu via %s...", label)
            try:
                locator.first.click(force=True)
            except PlaywrightError:
                self.logger.debug("Edit control click failed", exc_info=True)
            return label
        return None

    def _wait_for_controls(self, page: Page, locators: SettingsLocators) -> str:
        self.logger.info("Waiting for upload controls...")
        winner = race_signals(
            page,
            {
                FILE_INPUT: lambda: locators.file_input.count() > 0,
                UPLOAD_MENU_ITEM: locators.upload_menu_item.is_visible,
            },
            timeout_ms=self.timeouts.controls_ms,
            poll_ms=self.timeouts.poll_ms,
        )
        if winner is None:
            raise UploadControlsNotFound(
                f"No upload control appeared within {self.timeouts.controls_ms} ms"
            )
        self.logger.info("Upload controls found (%s).", winner)
        return winner

    def _submit(self, page: Page, locators: SettingsLocators, file_path: Path) -> tuple[str, str | None]:
        self.logger.info("Uploading: %s", file_path)
        controls = FILE_INPUT
        try:
            with page.expect_response(self._is_upload_response, timeout=self.timeouts.response_ms) as response_info:
                controls = self._deliver_file(page, locators, file_path)
            response = response_info.value
        except PlaywrightTimeoutError:
            self.logger.warning("Upload request response not observed; using DOM fallback checks.")
            return controls, None
        except PlaywrightError:
            self.logger.warning("Upload response listener failed; using DOM fallback checks.", exc_info=True)
            return controls, None
        self.logger.info("Upload request completed: %s %s", response.status, response.url)
        return controls, response.url

    def _deliver_file(self, page: Page, locators: SettingsLocators, file_path: Path) -> str:
        try:
            if self._present(locators.file_input):
                locators.file_input.first.set_input_files(str(file_path))
                self.logger.info("File set via input element")
                return FILE_INPUT
            with page.expect_file_chooser(timeout=self.timeouts.controls_ms) as chooser_info:
                locators.upload_menu_item.click(force=True)
            chooser_info.value.set_files(str(file_path))
            self.logger.info("File chooser used for selection")
            return UPLOAD_MENU_ITEM
        except PlaywrightError as exc:
            raise UploadError(f"Could not hand the image to the upload control: {exc}") from exc

    def _is_upload_response(self, response: Response) -> bool:
        if not 200 <= response.status < 300:
            return False
        url = response.url
        return any(fragment in url for fragment in self.selectors.upload_endpoints)

    def _await_completion(
        self,
        page: Page,
        state: CardState,
        response_url: str | None,
    ) -> tuple[CompletionSignal, bool]:
        if response_url:
            return CompletionSignal.NETWORK_RESPONSE, False
        try:
            page.wait_for_function(
                _ID_CHANGED_JS,
                arg={"selector": self.selectors.image_id, "prevId": state.prior_id},
                timeout=self.timeouts.id_poll_ms,
            )
        except PlaywrightError:
            self.logger.warning("No completion signal observed; verifying the image id directly.")
            return CompletionSignal.NONE, False
        return CompletionSignal.ID_POLL, True

    def _verify(self, page: Page, locators: SettingsLocators) -> str:
        try:
            page.wait_for_function(_ID_PRESENT_JS, arg=self.selectors.image_id, timeout=self.timeouts.verify_ms)
        except PlaywrightError:
            self.logger.debug("Image id still empty after %d ms", self.timeouts.verify_ms)

        if self._present(locators.image_container):
            try:
                page.wait_for_function(
                    _CONTAINER_SHOWN_JS,
                    arg=self.selectors.image_container,
                    timeout=self.timeouts.container_ms,
                )
            except PlaywrightError:
                self.logger.debug("Image container still hidden", exc_info=True)

        new_id = self._read_image_id(locators)
        if not new_id:
            raise UploadUnconfirmed("Upload did not produce a social preview image id.")
        return new_id

    # ------------------------------------------------------------------
    @staticmethod
    def _read_image_id(locators: SettingsLocators) -> str:
        try:
            if not locators.image_id.count():
                return ""
            return (locators.image_id.first.input_value() or "").strip()
        except PlaywrightError:
            return ""

    @staticmethod
    def _present(locator: Locator) -> bool:
        try:
            return locator.count() > 0
        except PlaywrightError:
            return False


__all__ = ["SettingsLocators", "SocialPreviewUploader", "UploadTimeouts", "FILE_INPUT", "UPLOAD_MENU_ITEM"]
