"""
Self-updater — replace the running packaged binary with a newer release.

States:

    idle ─▶ checking ─┬─▶ up_to_date
                      └─▶ update_available ─▶ updating ─┬─▶ updated
                                                        └─▶ failed
    idle ─▶ rolling_back ─┬─▶ rolled_back
                          └─▶ no_backup_found

Files on disk:

    <binary>        the running executable
    <binary>-old    the single retained backup (overwritten per update)

The new binary and the copy of the old one are both written to temp
files in the same directory and moved into place with ``os.replace``,
so the binary path and the backup slot always hold a complete file.
Rollback moves the backup back, consuming the slot.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from apiforge.core.errors import (
    ForgeError,
    NoBackupFound,
    NotPackagedBinary,
    UpdateFailed,
)
from apiforge.core.models.release import Release, ReleaseAsset, Stability, UpdateRecord
from apiforge.core.services.release_feed import ReleaseFeed, file_sha256

logger = logging.getLogger(__name__)

CHECKSUM_SUFFIX = ".sha256"
EXECUTABLE_MODE = 0o755


class UpdateState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UPDATING = "updating"
    UPDATED = "updated"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    NO_BACKUP_FOUND = "no_backup_found"


@dataclass
class UpdateOutcome:
    """Where an operation ended and the versions involved."""

    state: UpdateState
    record: UpdateRecord
    release: Release | None = None
    checksum_verified: bool = False

    @property
    def changed(self) -> bool:
        """Whether the binary on disk was replaced."""
        return self.state in (UpdateState.UPDATED, UpdateState.ROLLED_BACK)


def is_packaged() -> bool:
    """True when running from a frozen single-file build."""
    return bool(getattr(sys, "frozen", False))


def running_binary() -> Path:
    return Path(sys.executable).resolve()


@dataclass
class SelfUpdater:
    """Drive one check, update or rollback of a binary.

    ``packaged`` defaults to the running process; tests point the
    updater at a scratch binary with ``packaged=True``.
    """

    feed: ReleaseFeed
    binary_path: Path
    local_version: str
    stability: Stability = "stable"
    packaged: bool = field(default_factory=is_packaged)
    state: UpdateState = UpdateState.IDLE
    transitions: list[UpdateState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.transitions.append(self.state)

    @property
    def record(self) -> UpdateRecord:
        return UpdateRecord.for_binary(self.binary_path, self.local_version)

    def _transition(self, state: UpdateState) -> None:
        logger.debug("Self-update: %s → %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def _require_packaged(self) -> None:
        if not self.packaged:
            raise NotPackagedBinary()

    # ── Check ───────────────────────────────────────────────────

    def check(self) -> UpdateOutcome:
        """Compare the local version with the feed. Never writes."""
        self._require_packaged()
        self._transition(UpdateState.CHECKING)
        try:
            release = self.feed.latest_release(self.stability)
        except ForgeError:
            self._transition(UpdateState.FAILED)
            raise

        record = self.record
        if release is not None:
            record.remote_version = release.version
        logger.info(
            "Local %s, remote %s (%s)",
            record.local_version,
            record.remote_version or "none",
            self.stability,
        )

        state = UpdateState.UPDATE_AVAILABLE if record.has_update else UpdateState.UP_TO_DATE
        self._transition(state)
        return UpdateOutcome(state, record, release)

    # ── Update ──────────────────────────────────────────────────

    def update(self, force: bool = False) -> UpdateOutcome:
        """Install the remote release if it differs (or always with ``force``)."""
        outcome = self.check()
        if outcome.state == UpdateState.UP_TO_DATE and not force:
            return outcome

        release = outcome.release
        if release is None:
            self._transition(UpdateState.FAILED)
            raise UpdateFailed(f"No release published for {self.feed.repo}")

        self._transition(UpdateState.UPDATING)
        try:
            asset = release.asset(self.binary_path.name)
            if asset is None:
                raise UpdateFailed(
                    f"Release {release.tag_name} has no asset named {self.binary_path.name}"
                )
            verified = self._install(release, asset)
        except ForgeError:
            self._transition(UpdateState.FAILED)
            raise

        self._transition(UpdateState.UPDATED)
        logger.info("Updated %s to %s", self.binary_path, release.version)
        return UpdateOutcome(UpdateState.UPDATED, outcome.record, release, verified)

    def _install(self, release: Release, asset: ReleaseAsset) -> bool:
        """Download, verify and swap in ``asset``. Returns True if checksummed."""
        binary = self.binary_path
        backup = self.record.backup_path
        verified = False

        try:
            fd, tmp_name = tempfile.mkstemp(dir=binary.parent, prefix=f".{binary.name}-")
        except OSError as e:
            raise UpdateFailed(f"Cannot write to {binary.parent}: {e}") from e
        tmp = Path(tmp_name)
        tmp_backup: Path | None = None

        try:
            with os.fdopen(fd, "wb") as f:
                self.feed.download(asset, f)

            sums = release.asset(asset.name + CHECKSUM_SUFFIX)
            if sums is not None:
                expected = self.feed.fetch_checksum(sums)
                actual = file_sha256(tmp)
                if actual != expected:
                    raise UpdateFailed(
                        f"Checksum mismatch for {asset.name}: expected {expected}, got {actual}"
                    )
                verified = True
            else:
                logger.warning("No %s published for %s; checksum not verified",
                               CHECKSUM_SUFFIX, asset.name)

            os.chmod(tmp, EXECUTABLE_MODE)
            tmp_backup = self._stage_backup(binary)
            os.replace(tmp_backup, backup)
            os.replace(tmp, binary)
        except OSError as e:
            raise UpdateFailed(f"Cannot replace {binary}: {e}") from e
        finally:
            for leftover in (tmp, tmp_backup):
                if leftover is not None and leftover.exists():
                    leftover.unlink()

        logger.info("Previous binary kept at %s", backup)
        return verified

    @staticmethod
    def _stage_backup(binary: Path) -> Path:
        """Copy ``binary`` to a temp file beside it; the caller renames it."""
        fd, name = tempfile.mkstemp(dir=binary.parent, prefix=f".{binary.name}-old-")
        os.close(fd)
        staged = Path(name)
        try:
            shutil.copy2(binary, staged)
        except BaseException:
            staged.unlink()
            raise
        return staged

    # ── Rollback ────────────────────────────────────────────────

    def rollback(self) -> UpdateOutcome:
        """Restore the retained backup onto the binary path."""
        self._require_packaged()
        self._transition(UpdateState.ROLLING_BACK)
        record = self.record

        if not record.backup_path.is_file():
            self._transition(UpdateState.NO_BACKUP_FOUND)
            raise NoBackupFound(record.backup_path)

        try:
            os.replace(record.backup_path, record.binary_path)
        except OSError as e:
            self._transition(UpdateState.FAILED)
            raise UpdateFailed(f"Cannot restore {record.backup_path}: {e}") from e

        self._transition(UpdateState.ROLLED_BACK)
        logger.info("Rolled back %s", record.binary_path)
        return UpdateOutcome(UpdateState.ROLLED_BACK, record)
