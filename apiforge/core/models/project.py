"""
Project context — the frozen inputs of one provisioning run.

Collected once by the ``new`` command (flags, prompts, environment
probe) before the first step executes. Nothing downstream may change
it; conditional steps read the feature flags from here and only here.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectContext(BaseModel):
    """Immutable description of the project being provisioned."""

    model_config = ConfigDict(frozen=True)

    name: str
    target_dir: Path
    php: str = "php"

    use_redis: bool = False
    use_rbac: bool = False
    use_modules: bool = False

    git_email: str = ""
    git_name: str = ""

    command_timeout: float = Field(default=300, gt=0)

    @field_validator("name")
    @classmethod
    def _name_is_a_directory_name(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"Invalid project name: {value!r}")
        return value

    @field_validator("target_dir")
    @classmethod
    def _target_is_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError(f"Target directory must be absolute: {value}")
        return value

    @property
    def parent_dir(self) -> Path:
        """Directory the project generator runs in."""
        return self.target_dir.parent

    @property
    def features(self) -> dict[str, bool]:
        """Feature flags keyed by display label."""
        return {
            "Redis Cache": self.use_redis,
            "RBAC Package": self.use_rbac,
            "Modular Architecture": self.use_modules,
        }

    @classmethod
    def for_directory(cls, name: str, base_dir: Path, **kwargs) -> ProjectContext:
        """Build a context whose target is ``base_dir / name``."""
        return cls(name=name, target_dir=(base_dir / name).resolve(), **kwargs)
