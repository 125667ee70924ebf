from __future__ import annotations

import os
import re
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import InvalidInput


load_dotenv(override=False)

DEFAULT_BASE_URL = "https://github.com"
HOME_ENV = "SOCIAL_PREVIEW_HOME"
BASE_URL_ENV = "SOCIAL_PREVIEW_BASE_URL"
STORAGE_STATE_ENV = "SOCIAL_PREVIEW_STORAGE_STATE"

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_UNSAFE_HOST_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _home() -> Path:
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env)
    return Path.cwd()


def _work_dir() -> Path:
    return _home() / "work"


def ensure_work_dirs() -> dict[str, Path]:
    base = _work_dir()
    logs = base / "logs"
    shot = logs / "shot"
    trace = logs / "trace"
    for p in (logs, shot, trace):
        p.mkdir(parents=True, exist_ok=True)
    return {"logs": logs, "shot": shot, "trace": trace}


def normalize_base_url(base_url: str | None) -> str:
    value = (base_url or "").strip() or DEFAULT_BASE_URL
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidInput(f"Invalid base URL: {value!r}")
    return value.rstrip("/")


def normalize_repo(repo_or_url: str | None) -> str:
    """Return ``owner/repo`` from a slug, a slug with ``#fragment`` or a repo URL."""

    value = (repo_or_url or "").strip()
    if not value:
        raise InvalidInput("Missing --repo (expected owner/repo or a repository URL).")

    if "://" in value:
        parts = [part for part in urlparse(value).path.split("/") if part]
        if len(parts) < 2:
            raise InvalidInput(f"Invalid repository URL: {value}")
        return f"{parts[0]}/{parts[1]}"

    if _REPO_RE.match(value):
        return value

    head = value.split("#", 1)[0]
    if _REPO_RE.match(head):
        return head

    raise InvalidInput(f'Invalid --repo "{value}". Expected "owner/repo" or a repository URL.')


def default_storage_state_path(base_url: str, *, root: Path | None = None) -> Path:
    host = (urlparse(base_url).hostname or "").lower()
    stem = "github" if host == "github.com" else _UNSAFE_HOST_CHARS.sub("_", host)
    return (root or Path.cwd()) / ".auth" / f"{stem}.json"


def default_out_path(repo: str, image_format: str, *, root: Path | None = None) -> Path:
    owner, name = repo.split("/", 1)
    ext = "png" if image_format == "png" else "jpg"
    return (root or Path.cwd()) / ".social-preview" / f"{owner}__{name}.{ext}"


def repo_url(base_url: str, repo: str) -> str:
    return f"{base_url}/{repo}"


def settings_url(base_url: str, repo: str) -> str:
    return f"{repo_url(base_url, repo)}/settings"
