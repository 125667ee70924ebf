"""Viewport capture of a rendered document region within a byte budget."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, ContextManager, Sequence

from playwright.sync_api import (
    Page,
    TimeoutError as PlaywrightTimeoutError,
    Error as PlaywrightError,
)

from socialpreview.core.errors import ContentNotFound
from socialpreview.core.logger import get_logger
from socialpreview.utils import format_bytes
from .models import QUALITY_LADDER, CaptureRequest, CaptureResult

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from socialpreview.services.browser.playwright_flow import PlaywrightFlow


FlowFactory = Callable[[CaptureRequest], ContextManager["PlaywrightFlow"]]

_HIDE_OVERLAYS_JS = """
(selectors) => {
  for (const sel of selectors) {
    for (const el of document.querySelectorAll(sel)) el.style.display = "none";
  }
}
"""


class CapturePipeline:
    """Navigate, position the content region and screenshot the viewport.

    Every attempt runs in a fresh browser context obtained from
    ``flow_factory`` so no state (hidden overlays, scroll offsets) leaks from
    one quality rung to the next.
    """

    def __init__(
        self,
        flow_factory: FlowFactory,
        *,
        overlays: Sequence[str] = (),
        content_timeout_ms: int = 20_000,
        settle_ms: int = 150,
        ladder: Sequence[int] = QUALITY_LADDER,
        logger=None,
    ) -> None:
        self.flow_factory = flow_factory
        self.overlays = tuple(overlays)
        self.content_timeout_ms = content_timeout_ms
        self.settle_ms = settle_ms
        self.ladder = tuple(ladder)
        self.logger = logger or get_logger("capture")

    # ------------------------------------------------------------------
    def capture(self, request: CaptureRequest) -> CaptureResult:
        out_path = Path(request.out_path)
        quality = request.effective_quality
        size = self._capture_once(request, out_path, quality)
        self.logger.info("Screenshot saved: %s (%s) from %s", out_path, format_bytes(size), request.url)

        best = CaptureResult(
            path=out_path,
            byte_size=size,
            quality=quality,
            width=request.width,
            height=request.height,
        )
        if size <= request.byte_budget:
            return best

        if not request.image_format.lossy:
            self.logger.warning(
                "PNG screenshot is over %s (%s). Consider --format jpeg --quality 80",
                format_bytes(request.byte_budget),
                format_bytes(size),
            )
            best.oversized = True
            return best

        self.logger.warning(
            "Screenshot is over %s (%s). Retrying with lower JPEG quality...",
            format_bytes(request.byte_budget),
            format_bytes(size),
        )
        return self._walk_ladder(request, best)

    # ------------------------------------------------------------------
    def _walk_ladder(self, request: CaptureRequest, best: CaptureResult) -> CaptureResult:
        out_path = best.path
        staging = out_path.with_name(f"{out_path.stem}.retry{out_path.suffix}")
        try:
            for rung in self.ladder:
                size = self._capture_once(request, staging, rung)
                self.logger.info("   -> JPEG quality %d: %s", rung, format_bytes(size))
                if size < best.byte_size:
                    staging.replace(out_path)
                    best = CaptureResult(
                        path=out_path,
                        byte_size=size,
                        quality=rung,
                        width=request.width,
                        height=request.height,
                    )
                if best.byte_size <= request.byte_budget:
                    return best
        finally:
            staging.unlink(missing_ok=True)

        self.logger.warning(
            "Quality ladder exhausted; keeping the smallest capture (%s at quality %s)",
            format_bytes(best.byte_size),
            best.quality,
        )
        best.oversized = True
        return best

    def _capture_once(self, request: CaptureRequest, target: Path, quality: int | None) -> int:
        with self.flow_factory(request) as flow:
            page = flow.goto(request.url, verify_session=False, description="document")
            self._position_content(page, request.selector)
            target.parent.mkdir(parents=True, exist_ok=True)
            options: dict[str, object] = {
                "path": str(target),
                "type": request.image_format.value,
                "full_page": False,
            }
            if quality is not None:
                options["quality"] = quality
            page.screenshot(**options)
        return target.stat().st_size

    def _position_content(self, page: Page, selector: str) -> None:
        content = page.locator(selector).first
        try:
            content.wait_for(state="visible", timeout=self.content_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ContentNotFound(
                f"Content region {selector!r} not visible after {self.content_timeout_ms} ms"
            ) from exc
        try:
            content.scroll_into_view_if_needed()
        except PlaywrightError:
            self.logger.debug("scroll_into_view_if_needed failed", exc_info=True)
        page.wait_for_timeout(self.settle_ms)
        self._hide_overlays(page)
        page.wait_for_timeout(self.settle_ms)

    def _hide_overlays(self, page: Page) -> None:
        if not self.overlays:
            return
        try:
            page.evaluate(_HIDE_OVERLAYS_JS, list(self.overlays))
        except PlaywrightError:
            self.logger.debug("Overlay suppression skipped", exc_info=True)


__all__ = ["CapturePipeline", "FlowFactory"]
