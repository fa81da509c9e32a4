"""
Release and update models — the self-updater's view of the world.

``Release`` mirrors the subset of the GitHub releases payload the
updater reads. ``UpdateRecord`` ties the running binary to its single
backup slot; the backup path is derived from the binary path so a
fresh process can find it without shared state.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

# Suffix appended to the binary path for the one retained backup
BACKUP_SUFFIX = "-old"

Stability = Literal["stable", "any"]

_VERSION_RE = re.compile(r"^v?(\d+(?:\.\d+)*)(?:[-+.]?(.*))?$")


def normalize_version(version: str) -> str:
    """Strip whitespace and a leading ``v`` from a tag."""
    version = version.strip()
    return version[1:] if version[:1] in ("v", "V") else version


def version_key(version: str) -> tuple:
    """Sort key for release tags: numeric parts, then finals above pre-releases.

    ``1.2.0`` > ``1.2.0-beta.2`` > ``1.2.0-beta.1`` > ``1.1.9``.
    Unparseable tags sort below everything else.
    """
    match = _VERSION_RE.match(version.strip())
    if not match:
        return ((), 0, version)
    numbers = tuple(int(x) for x in match.group(1).split("."))
    # Pad so 1.2 == 1.2.0
    numbers = numbers + (0,) * (3 - len(numbers)) if len(numbers) < 3 else numbers
    suffix = match.group(2) or ""
    return (numbers, 0 if suffix else 1, suffix)


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a release."""

    name: str
    browser_download_url: str
    size: int = 0


class Release(BaseModel):
    """One entry of the release feed."""

    tag_name: str
    html_url: str = ""
    prerelease: bool = False
    draft: bool = False
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @property
    def version(self) -> str:
        return normalize_version(self.tag_name)

    def asset(self, name: str) -> ReleaseAsset | None:
        """Find an asset by exact file name."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    def matches(self, stability: Stability) -> bool:
        """Whether this release belongs to the requested stability class."""
        if self.draft:
            return False
        return stability == "any" or not self.prerelease


class UpdateRecord(BaseModel):
    """Local/remote versions and the on-disk locations they refer to."""

    local_version: str
    remote_version: str = ""
    binary_path: Path
    backup_path: Path

    @classmethod
    def for_binary(cls, binary_path: Path, local_version: str) -> UpdateRecord:
        """Create a record using the fixed backup-path convention."""
        return cls(
            local_version=local_version,
            binary_path=binary_path,
            backup_path=binary_path.with_name(binary_path.name + BACKUP_SUFFIX),
        )

    @property
    def has_update(self) -> bool:
        """Remote version is known and differs from the local one."""
        if not self.remote_version:
            return False
        return normalize_version(self.remote_version) != normalize_version(
            self.local_version
        )
