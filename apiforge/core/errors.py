"""
Error taxonomy — every failure the forge reports to the user.

Pipeline errors (environment, command, file) are fatal to the run.
Self-update errors are caught per operation by the CLI and turned into
a specific message; none of them leave the binary half-written.
"""

from __future__ import annotations

from collections.abc import Sequence


class ForgeError(Exception):
    """Base class for all forge errors."""


# ── Provisioning ────────────────────────────────────────────────


class EnvironmentCheckFailed(ForgeError):
    """A required external tool is missing or too old."""

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        tools = ", ".join(sorted(failures))
        super().__init__(f"Environment check failed: {tools}")


class CommandFailed(ForgeError):
    """An external command exited non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        exit_code: int | None,
        stderr: str = "",
    ):
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Command failed: {' '.join(self.command)}"
        if exit_code is not None:
            message += f" (exit {exit_code})"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class CommandTimedOut(CommandFailed):
    """An external command exceeded the run ceiling and was killed."""

    def __init__(self, command: Sequence[str], timeout: float):
        self.timeout = timeout
        super().__init__(command, None, f"Command timed out after {timeout:g}s")


class FileOperationFailed(ForgeError):
    """An expected file is missing or a structured document is malformed."""

    def __init__(self, path: object, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


# ── Self-update ─────────────────────────────────────────────────


class UpdateCheckFailed(ForgeError):
    """The release feed could not be read or returned unusable metadata."""


class UpdateFailed(ForgeError):
    """Downloading or installing a release failed."""


class NotPackagedBinary(UpdateFailed):
    """Self-update was invoked outside a packaged single-file build."""

    def __init__(self) -> None:
        super().__init__(
            "This command can only be used when running from a packaged binary."
        )


class NoBackupFound(ForgeError):
    """Rollback was requested but no previous binary is retained."""

    def __init__(self, backup_path: object):
        self.backup_path = str(backup_path)
        super().__init__(f"No backup version found at {self.backup_path}")
