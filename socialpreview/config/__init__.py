"""Selector configuration for the GitHub pages the tool drives.

Selectors are kept in YAML so that markup changes on the target site can be
patched without touching the automation code. Files are validated with
pydantic before use.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from socialpreview.core.errors import ConfigError


CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_SELECTOR_PATH = CONFIG_DIR / "selectors" / "github.yaml"


class ReadmeSelectors(BaseModel):
    """Where the README lives and what to hide before capturing it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url_template: str = "{repo_url}/blob/{branch}/README.md"
    content: str = "article.markdown-body"
    overlays: List[str] = Field(default_factory=list)

    @field_validator("url_template")
    @classmethod
    def _template_has_repo(cls, value: str) -> str:
        if "{repo_url}" not in value:
            raise ValueError("url_template must contain {repo_url}")
        return value

    def url(self, repo_url: str, branch: str) -> str:
        return self.url_template.format(repo_url=repo_url, branch=branch)


class SettingsSelectors(BaseModel):
    """Controls of the repository settings social preview section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    login_markers: List[str] = Field(default_factory=lambda: ["/login", "/session"])
    section_heading: str
    edit_button: str
    section_edit_button: str
    file_input: str
    upload_text: str
    image_id: str
    image_container: str
    upload_endpoints: List[str] = Field(min_length=1)


class AuthSelectors(BaseModel):
    """Markers that only exist on pages rendered for a logged-in user."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    login_path: str = "/login"
    user_meta: str
    user_menu: List[str] = Field(default_factory=list)


class SelectorConfig(BaseModel):
    """Complete selector file model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    readme: ReadmeSelectors = Field(default_factory=ReadmeSelectors)
    settings: SettingsSelectors
    auth: AuthSelectors


def load_selectors(path: str | Path | None = None) -> SelectorConfig:
    """Load and validate a selector YAML file."""

    selectors_path = Path(path) if path else DEFAULT_SELECTOR_PATH
    raw = _load_yaml(selectors_path)
    try:
        return SelectorConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid selector file {selectors_path}: {exc}") from exc


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Selector file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Selector file is not valid YAML: {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Selector configuration must be a mapping")
    return data


__all__ = [
    "AuthSelectors",
    "DEFAULT_SELECTOR_PATH",
    "ReadmeSelectors",
    "SelectorConfig",
    "SettingsSelectors",
    "load_selectors",
]
