from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from socialpreview.core.errors import BrowserError, NotAuthenticated
from socialpreview.services.browser import PlaywrightFlow, race_signals


def _flow(tmp_path, **kwargs) -> PlaywrightFlow:
    return PlaywrightFlow(screenshots_dir=tmp_path / "shots", trace_dir=tmp_path / "traces", **kwargs)


def test_goto_detects_login_redirect(tmp_path):
    flow = _flow(tmp_path)
    page = MagicMock()
    page.url = "https://github.com/login?return_to=%2Fsettings"
    flow._page = page

    with pytest.raises(NotAuthenticated):
        flow.goto("https://github.com/octo/demo/settings")

    page.goto.assert_called_once_with("https://github.com/octo/demo/settings", wait_until="domcontentloaded")
    page.screenshot.assert_called_once()


def test_goto_without_session_check_accepts_login_page(tmp_path):
    flow = _flow(tmp_path)
    page = MagicMock()
    page.url = "https://github.com/login"
    flow._page = page

    assert flow.goto("https://github.com/login", verify_session=False) is page


def test_goto_wraps_navigation_timeout(tmp_path):
    flow = _flow(tmp_path)
    page = MagicMock()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded.")
    flow._page = page

    with pytest.raises(BrowserError):
        flow.goto("https://github.com/octo/demo")


def test_is_login_url_uses_markers(tmp_path):
    flow = _flow(tmp_path, login_url_markers=("/sso",))

    assert flow.is_login_url("https://ghe.example.com/SSO/start")
    assert not flow.is_login_url("https://ghe.example.com/login")


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/octo/sessionize/settings",
        "https://github.com/octo/login-page/settings",
        "https://github.com/login-tools/demo/settings",
    ],
)
def test_goto_accepts_repository_named_like_login_page(tmp_path, url):
    flow = _flow(tmp_path)
    page = MagicMock()
    page.url = url
    flow._page = page

    assert flow.goto(url) is page
    page.screenshot.assert_not_called()


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/login",
        "https://github.com/session",
        "https://github.com/sessions/two-factor/app",
        "https://github.com/login/oauth/authorize?client_id=x",
    ],
)
def test_is_login_url_matches_leading_path_segment(tmp_path, url):
    assert _flow(tmp_path).is_login_url(url)


def test_new_context_passes_viewport_and_existing_state(tmp_path):
    state = tmp_path / "state.json"
    state.write_text("{}", encoding="utf-8")
    flow = _flow(tmp_path, storage_state_path=state, viewport=(1280, 640))
    browser = MagicMock()

    flow._new_context(browser)

    browser.new_context.assert_called_once_with(
        storage_state=str(state), viewport={"width": 1280, "height": 640}
    )


def test_new_context_without_state_file(tmp_path):
    flow = _flow(tmp_path, storage_state_path=tmp_path / "missing.json")
    browser = MagicMock()

    flow._new_context(browser)

    browser.new_context.assert_called_once_with(storage_state=None, viewport=None)


def test_launch_falls_back_to_system_channels(tmp_path):
    flow = _flow(tmp_path)
    playwright = MagicMock()
    browser = MagicMock()
    playwright.chromium.launch.side_effect = [PlaywrightError("Executable doesn't exist"), browser]

    assert flow._launch_browser(playwright) is browser
    assert playwright.chromium.launch.call_args.kwargs["channel"] == "msedge"


def test_exit_records_artifacts_and_closes(tmp_path):
    flow = _flow(tmp_path)
    page, context, browser, playwright = MagicMock(), MagicMock(), MagicMock(), MagicMock()
    flow._page, flow._context, flow._browser, flow._playwright = page, context, browser, playwright
    flow._tracing_active = True

    with pytest.raises(RuntimeError):
        with flow:
            raise RuntimeError("boom")

    page.screenshot.assert_called_once()
    context.tracing.stop.assert_called_once()
    assert "path" in context.tracing.stop.call_args.kwargs
    context.close.assert_called_once()
    browser.close.assert_called_once()
    playwright.stop.assert_called_once()
    assert flow._page is None


def test_race_signals_returns_first_firing_probe():
    page = MagicMock()
    polls = {"count": 0}

    def slow():
        polls["count"] += 1
        return polls["count"] >= 3

    winner = race_signals(page, {"input": lambda: False, "text": slow}, timeout_ms=10_000, poll_ms=5)

    assert winner == "text"
    assert page.wait_for_timeout.call_count == 2


def test_race_signals_times_out():
    page = MagicMock()
    ticks = iter([0.0, 0.5, 1.5])

    winner = race_signals(page, {"input": lambda: False}, timeout_ms=1_000, clock=lambda: next(ticks))

    assert winner is None
    page.wait_for_timeout.assert_called_once()


def test_race_signals_treats_probe_errors_as_not_fired():
    page = MagicMock()

    def broken():
        raise PlaywrightError("Target closed")

    assert race_signals(page, {"broken": broken, "ok": lambda: True}, timeout_ms=0) == "ok"
