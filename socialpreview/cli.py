"""Typer based command line entry points for social-preview."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn, Optional

import typer
from playwright.sync_api import Error as PlaywrightError

from socialpreview.config import load_selectors
from socialpreview.core.errors import SocialPreviewError
from socialpreview.core.logger import get_logger, log_file_path, set_level
from socialpreview.core.pipeline import UpdateOptions, UpdatePipeline, bootstrap_session
from socialpreview.core.settings import (
    BASE_URL_ENV,
    STORAGE_STATE_ENV,
    default_out_path,
    default_storage_state_path,
    normalize_base_url,
    normalize_repo,
)
from socialpreview.services.capture import ImageFormat
from socialpreview.utils import format_bytes

app = typer.Typer(
    help="Screenshot a repository README and upload it as the repository's social preview image.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    try:
        set_level(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


def _handle_error(exc: Exception) -> NoReturn:
    get_logger().error("%s: %s", type(exc).__name__, exc, exc_info=True)
    typer.secho(f"{type(exc).__name__}: {exc}", fg=typer.colors.RED, err=True)
    hint = getattr(exc, "hint", "")
    if hint:
        typer.secho(f"Hint: {hint}", err=True)
    raise typer.Exit(code=1)


def _unexpected_failure(exc: Exception) -> NoReturn:
    get_logger().exception("Unexpected failure")
    typer.secho(f"Unexpected failure: {exc}", fg=typer.colors.RED, err=True)
    log_path = log_file_path()
    if log_path is not None:
        typer.secho(f"Details: {log_path}", err=True)
    raise typer.Exit(code=1) from exc


def _warn(message: str) -> None:
    typer.secho(f"Warning: {message}", fg=typer.colors.YELLOW, err=True)


def _resolve_storage_state(value: Optional[Path], base_url: str) -> Path:
    if value is not None:
        return value.expanduser().resolve()
    return default_storage_state_path(base_url)


@app.command("init-auth")
def init_auth(
    base_url: Optional[str] = typer.Option(None, "--base-url", envvar=BASE_URL_ENV, help="Base GitHub URL (default: https://github.com)"),
    storage_state: Optional[Path] = typer.Option(
        None, "--storage-state", envvar=STORAGE_STATE_ENV, help="Storage state JSON path (default: ./.auth/<host>.json)"
    ),
    headless: bool = typer.Option(False, "--headless/--headed", help="Run the login browser headless"),
    selectors_file: Optional[Path] = typer.Option(None, "--selectors", help="Override the selector YAML file"),
) -> None:
    """Log in interactively and save the browser session."""

    try:
        base = normalize_base_url(base_url)
        state_path = _resolve_storage_state(storage_state, base)
        result = bootstrap_session(
            base,
            state_path,
            headless=headless,
            selectors=load_selectors(selectors_file),
            announce=typer.echo,
        )
    except (SocialPreviewError, PlaywrightError) as exc:
        _handle_error(exc)
    except Exception as exc:  # noqa: BLE001
        _unexpected_failure(exc)
    typer.secho(
        f"Saved storage state for @{result.username or '?'} to: {result.storage_state}",
        fg=typer.colors.GREEN,
    )


@app.command("update")
def update(
    repo: str = typer.Option(..., "--repo", help="owner/repo or a repository URL"),
    base_url: Optional[str] = typer.Option(None, "--base-url", envvar=BASE_URL_ENV, help="Base GitHub URL (default: https://github.com)"),
    storage_state: Optional[Path] = typer.Option(
        None, "--storage-state", envvar=STORAGE_STATE_ENV, help="Storage state JSON path (default: ./.auth/<host>.json)"
    ),
    branch: str = typer.Option("main", "--branch", help="Branch whose README is captured"),
    width: int = typer.Option(1280, "--width", help="Viewport width"),
    height: int = typer.Option(640, "--height", help="Viewport height"),
    image_format: str = typer.Option("jpeg", "--format", help="png|jpeg"),
    quality: int = typer.Option(80, "--quality", help="JPEG quality 1-100 (jpeg only)"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output path (default: ./.social-preview/<owner>__<repo>.<ext>)"),
    headless: bool = typer.Option(True, "--headless/--headed", help="Run the browser headless"),
    selectors_file: Optional[Path] = typer.Option(None, "--selectors", help="Override the selector YAML file"),
) -> None:
    """Capture the README and upload it as the social preview."""

    try:
        base = normalize_base_url(base_url)
        slug = normalize_repo(repo)
        fmt = ImageFormat.parse(image_format)
        options = UpdateOptions(
            base_url=base,
            repo=slug,
            storage_state=_resolve_storage_state(storage_state, base),
            out_path=out.expanduser().resolve() if out else default_out_path(slug, fmt.value),
            width=width,
            height=height,
            image_format=fmt,
            quality=quality,
            headless=headless,
            branch=branch,
        )
        pipeline = UpdatePipeline(selectors=load_selectors(selectors_file))
        result = pipeline.run(options)
    except (SocialPreviewError, PlaywrightError) as exc:
        _handle_error(exc)
    except Exception as exc:  # noqa: BLE001
        _unexpected_failure(exc)

    capture, outcome = result.capture, result.outcome
    if capture.oversized:
        _warn(f"image is {format_bytes(capture.byte_size)}, over the 1 MB limit; the upload may be rejected.")
    if outcome.unchanged:
        _warn("image id is unchanged (likely the same image content).")
    typer.secho(f"Social preview updated for {slug}: image id {outcome.new_id}", fg=typer.colors.GREEN)


__all__ = ["app"]
