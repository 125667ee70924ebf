from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .logger import get_logger
from . import settings
from socialpreview.config import SelectorConfig, load_selectors
from socialpreview.services.browser.playwright_flow import PlaywrightFlow
from socialpreview.services.capture import CapturePipeline, CaptureRequest, CaptureResult, ImageFormat
from socialpreview.services.session import BootstrapResult, SessionBootstrap, SessionStore
from socialpreview.services.upload import SocialPreviewUploader, UploadOutcome, UploadTarget, UploadTimeouts


ProgressCB = Callable[[str, str], None]
FlowFactory = Callable[..., PlaywrightFlow]

#: Viewport for the settings page; only the capture uses the requested size.
SETTINGS_VIEWPORT = (1280, 720)
LOGIN_VIEWPORT = (1280, 720)


@dataclass(slots=True)
class UpdateOptions:
    base_url: str
    repo: str
    storage_state: Path
    out_path: Path
    width: int = 1280
    height: int = 640
    image_format: ImageFormat = ImageFormat.JPEG
    quality: int = 80
    headless: bool = True
    branch: str = "main"


@dataclass(slots=True)
class UpdateResult:
    capture: CaptureResult
    outcome: UploadOutcome


class UpdatePipeline:
    """Coordinates Capture -> Upload for the ``update`` command.

    Fatal errors from either stage propagate unchanged. The captured image is
    left on disk when the upload fails so it can be inspected or retried.
    """

    def __init__(
        self,
        *,
        selectors: SelectorConfig | None = None,
        flow_factory: FlowFactory | None = None,
        upload_timeouts: UploadTimeouts | None = None,
        logger=None,
    ) -> None:
        self.logger = logger or get_logger()
        self.selectors = selectors or load_selectors()
        self.flow_factory = flow_factory or PlaywrightFlow
        self.upload_timeouts = upload_timeouts

    def run(self, options: UpdateOptions, progress_cb: ProgressCB | None = None) -> UpdateResult:
        def progress(stage: str, detail: str = "") -> None:
            if progress_cb:
                progress_cb(stage, detail)
            self.logger.info("%s - %s", stage, detail)

        repo_url = settings.repo_url(options.base_url, options.repo)
        request = CaptureRequest(
            url=self.selectors.readme.url(repo_url, options.branch),
            selector=self.selectors.readme.content,
            width=options.width,
            height=options.height,
            image_format=options.image_format,
            out_path=Path(options.out_path),
            quality=options.quality,
        )
        store = SessionStore(options.storage_state)
        store.require()

        # 1. Capture
        progress("1/2 capture", f"{options.repo} README at {options.width}x{options.height}")
        capture_pipeline = CapturePipeline(
            lambda req: self._flow(options, (req.width, req.height)),
            overlays=self.selectors.readme.overlays,
            logger=self.logger,
        )
        capture = capture_pipeline.capture(request)
        detail = f"{capture.path} ({capture.byte_size} bytes)"
        if capture.oversized:
            detail += " over budget"
        progress("1/2 capture", detail)

        # 2. Upload
        target = UploadTarget(settings.settings_url(options.base_url, options.repo), capture.path)
        target.validate()
        progress("2/2 upload", target.settings_url)
        with self._flow(options, SETTINGS_VIEWPORT) as flow:
            uploader = SocialPreviewUploader(
                flow,
                self.selectors.settings,
                timeouts=self.upload_timeouts,
                logger=self.logger,
            )
            outcome = uploader.upload(target)
        progress("2/2 upload", f"image id {outcome.new_id} ({outcome.signal.value})")

        return UpdateResult(capture=capture, outcome=outcome)

    def _flow(self, options: UpdateOptions, viewport: tuple[int, int]) -> PlaywrightFlow:
        return self.flow_factory(
            headless=options.headless,
            storage_state_path=options.storage_state,
            viewport=viewport,
            login_url_markers=tuple(self.selectors.settings.login_markers),
        )


def bootstrap_session(
    base_url: str,
    storage_state: Path,
    *,
    headless: bool = False,
    selectors: SelectorConfig | None = None,
    flow_factory: FlowFactory | None = None,
    interactive: bool = True,
    announce: Callable[[str], None] | None = None,
) -> BootstrapResult:
    """Run the interactive login and save the session to ``storage_state``."""

    selectors = selectors or load_selectors()
    factory = flow_factory or PlaywrightFlow
    bootstrap = SessionBootstrap(
        lambda: factory(headless=headless, storage_state_path=None, viewport=LOGIN_VIEWPORT),
        selectors.auth,
        SessionStore(storage_state),
        interactive=interactive,
        announce=announce,
    )
    return bootstrap.run(base_url)
