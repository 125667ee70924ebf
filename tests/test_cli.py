"""CLI tests for the init-auth and update commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from socialpreview import cli
from socialpreview.core.errors import NotAuthenticated
from socialpreview.core.pipeline import UpdateResult
from socialpreview.services.capture import CaptureResult, ImageFormat
from socialpreview.services.session import BootstrapResult
from socialpreview.services.upload import CompletionSignal, UploadOutcome


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


class FakePipeline:
    options = None
    outcome = UploadOutcome(new_id="abc123", prior_id="", id_changed=True, signal=CompletionSignal.ID_POLL)
    error: Exception | None = None
    oversized = False

    def __init__(self, *, selectors=None, **_: object):
        self.selectors = selectors

    def run(self, options, progress_cb=None):
        FakePipeline.options = options
        if FakePipeline.error is not None:
            raise FakePipeline.error
        capture = CaptureResult(
            options.out_path, 1_100_000 if FakePipeline.oversized else 1000, options.quality,
            options.width, options.height, oversized=FakePipeline.oversized,
        )
        return UpdateResult(capture=capture, outcome=FakePipeline.outcome)


@pytest.fixture(autouse=True)
def _fake_pipeline(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SOCIAL_PREVIEW_BASE_URL", raising=False)
    monkeypatch.delenv("SOCIAL_PREVIEW_STORAGE_STATE", raising=False)
    FakePipeline.options = None
    FakePipeline.error = None
    FakePipeline.oversized = False
    FakePipeline.outcome = UploadOutcome(
        new_id="abc123", prior_id="", id_changed=True, signal=CompletionSignal.ID_POLL
    )
    monkeypatch.setattr(cli, "UpdatePipeline", FakePipeline)


def test_update_success_with_defaults(cli_runner, tmp_path):
    result = cli_runner.invoke(cli.app, ["update", "--repo", "https://github.com/octo/demo"])

    assert result.exit_code == 0, result.output
    assert "image id abc123" in result.output
    options = FakePipeline.options
    assert options.repo == "octo/demo"
    assert options.base_url == "https://github.com"
    assert options.storage_state == Path.cwd() / ".auth" / "github.json"
    assert options.out_path == Path.cwd() / ".social-preview" / "octo__demo.jpg"
    assert (options.width, options.height) == (1280, 640)
    assert options.image_format is ImageFormat.JPEG
    assert options.quality == 80
    assert options.headless is True
    assert options.branch == "main"


def test_update_png_headed_with_env_base_url(cli_runner, monkeypatch):
    monkeypatch.setenv("SOCIAL_PREVIEW_BASE_URL", "https://ghe.example.com/")
    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo", "--format", "png", "--headed"])

    assert result.exit_code == 0, result.output
    options = FakePipeline.options
    assert options.base_url == "https://ghe.example.com"
    assert options.storage_state == Path.cwd() / ".auth" / "ghe.example.com.json"
    assert options.out_path.name == "octo__demo.png"
    assert options.headless is False


def test_update_unchanged_id_warns_but_succeeds(cli_runner):
    FakePipeline.outcome = UploadOutcome(
        new_id="abc123", prior_id="abc123", id_changed=False, signal=CompletionSignal.NETWORK_RESPONSE
    )

    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo"])

    assert result.exit_code == 0, result.output
    assert "unchanged" in result.output


def test_update_oversized_warns_but_succeeds(cli_runner):
    FakePipeline.oversized = True

    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo"])

    assert result.exit_code == 0, result.output
    assert "over the 1 MB limit" in result.output


def test_update_not_authenticated_exits_non_zero(cli_runner):
    FakePipeline.error = NotAuthenticated("Not logged in (redirected to https://github.com/login).")

    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo"])

    assert result.exit_code == 1
    assert "NotAuthenticated:" in result.output
    assert "init-auth" in result.output


def test_update_unexpected_failure_exits_non_zero(cli_runner):
    FakePipeline.error = PermissionError("[Errno 13] Permission denied: '/readonly/octo__demo.jpg'")

    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo", "--out", "/readonly/octo__demo.jpg"])

    assert result.exit_code == 1
    assert "Unexpected failure" in result.output
    assert "Permission denied" in result.output
    assert not isinstance(result.exception, PermissionError)


def test_update_invalid_repo(cli_runner):
    result = cli_runner.invoke(cli.app, ["update", "--repo", "not-a-repo"])

    assert result.exit_code == 1
    assert "InvalidInput" in result.output
    assert FakePipeline.options is None


def test_update_invalid_format(cli_runner):
    result = cli_runner.invoke(cli.app, ["update", "--repo", "octo/demo", "--format", "gif"])

    assert result.exit_code == 1
    assert "InvalidInput" in result.output


def test_init_auth_saves_default_path(cli_runner, monkeypatch):
    calls = {}

    def fake_bootstrap(base_url, storage_state, **kwargs):
        calls.update(base_url=base_url, storage_state=storage_state, **kwargs)
        return BootstrapResult(username="octocat", storage_state=storage_state)

    monkeypatch.setattr(cli, "bootstrap_session", fake_bootstrap)

    result = cli_runner.invoke(cli.app, ["init-auth"])

    assert result.exit_code == 0, result.output
    assert "@octocat" in result.output
    assert calls["base_url"] == "https://github.com"
    assert calls["storage_state"] == Path.cwd() / ".auth" / "github.json"
    assert calls["headless"] is False


def test_unknown_log_level(cli_runner):
    result = cli_runner.invoke(cli.app, ["--log-level", "LOUD", "update", "--repo", "octo/demo"])

    assert result.exit_code != 0
