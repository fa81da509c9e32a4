"""
Configuration loader — reads forge.yml into ``ForgeSettings``.

Settings are optional: with no file every field keeps its default.
Lookup order for the file is ``--config`` > ``FORGE_CONFIG`` env var >
``~/.config/laravel-api-forge/forge.yml``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILE = "forge.yml"
CONFIG_ENV_VAR = "FORGE_CONFIG"
USER_CONFIG_DIR = Path("~/.config/laravel-api-forge")

DEFAULT_RELEASE_REPO = "goez-tools/laravel-api-forge"
DEFAULT_GITHUB_API = "https://api.github.com"


class ConfigError(Exception):
    """Raised when forge configuration is invalid or unreadable."""


class ForgeSettings(BaseModel):
    """User-level settings for the forge."""

    release_repo: str = DEFAULT_RELEASE_REPO
    github_api_url: str = DEFAULT_GITHUB_API
    github_token: str | None = None
    command_timeout: float = Field(default=300, gt=0)
    http_timeout: float = Field(default=30, gt=0)

    @field_validator("release_repo")
    @classmethod
    def validate_release_repo(cls, v: str) -> str:
        owner, sep, repo = v.strip().partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"release_repo must look like 'owner/repo', got {v!r}")
        return v.strip()

    @field_validator("github_api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"github_api_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which settings file to read, if any.

    An explicit path is returned even if it does not exist, so that
    ``load_settings`` can report it.
    """
    if explicit is not None:
        return explicit

    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()

    candidate = USER_CONFIG_DIR.expanduser() / CONFIG_FILE
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> ForgeSettings:
    """Load and validate forge settings.

    Args:
        path: Explicit settings file (``--config``). If None, the env
            var and the user config directory are consulted.

    Returns:
        Validated settings; defaults when no file is found.

    Raises:
        ConfigError: If a named file is missing or its content is invalid.
    """
    path = find_config_file(path)
    data: dict = {}

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        logger.debug("Loading forge settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")
        data = loaded

    # Token from the environment unless the file sets one
    if not data.get("github_token") and os.environ.get("GITHUB_TOKEN"):
        data["github_token"] = os.environ["GITHUB_TOKEN"]

    try:
        settings = ForgeSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid forge configuration: {e}") from e

    logger.debug("Release feed: %s (%s)", settings.release_repo, settings.github_api_url)
    return settings
