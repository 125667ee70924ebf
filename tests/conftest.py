from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep logs and failure artefacts out of the working tree.
os.environ.setdefault("SOCIAL_PREVIEW_HOME", tempfile.mkdtemp(prefix="social-preview-tests-"))

from socialpreview.config import SelectorConfig, load_selectors


@pytest.fixture(scope="session")
def selectors() -> SelectorConfig:
    return load_selectors()


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("SOCIAL_PREVIEW_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def _fresh_logger(_isolated_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import socialpreview.core.logger as core_logger

    monkeypatch.setattr(core_logger, "_LOGGER", None)
