"""
Environment probe — are the external tools the pipeline drives installed?

Read-only: runs ``--version`` for each required tool, parses the
output, and compares against a minimum where one applies. A failed
probe stops ``new`` before anything is created.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from apiforge.adapters.base import Runner
from apiforge.core.errors import CommandFailed, EnvironmentCheckFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolRequirement:
    """How to probe one tool and what counts as good enough."""

    label: str
    command: tuple[str, ...]
    pattern: str
    minimum: str | None = None
    # A tool whose version cannot be parsed fails instead of passing
    strict: bool = False


@dataclass
class ToolCheck:
    """Result of probing one tool."""

    tool: str
    ok: bool
    message: str
    version: str | None = None


REQUIREMENTS: tuple[ToolRequirement, ...] = (
    ToolRequirement("PHP", ("php", "--version"), r"PHP (\d+\.\d+)", minimum="8.2", strict=True),
    ToolRequirement("Composer", ("composer", "--version"), r"Composer version (\d+\.\d+\.\d+)"),
    ToolRequirement(
        "Laravel Installer",
        ("laravel", "--version"),
        r"Laravel Installer (\d+\.\d+\.\d+)",
        minimum="5.0",
        strict=True,
    ),
    ToolRequirement("Git", ("git", "--version"), r"git version (\d+\.\d+\.\d+)"),
)

INSTALL_HINTS: dict[str, str] = {
    "PHP": "PHP 8.2+: https://www.php.net/downloads.php",
    "Composer": "Composer: https://getcomposer.org/download/",
    "Laravel Installer": "Laravel Installer: composer global require laravel/installer",
    "Git": "Git: https://git-scm.com/downloads",
}

# Checked after whatever ``php`` resolves to on PATH
PHP_LOCATIONS: tuple[str, ...] = (
    "/usr/bin/php",
    "/usr/local/bin/php",
    "/opt/homebrew/bin/php",
    "/opt/local/bin/php",
)


def _parse_version(version: str) -> tuple[int, ...]:
    return tuple(int(x) for x in version.lstrip("v").split(".")[:3])


def version_at_least(version: str, minimum: str) -> bool:
    """Compare dotted versions numerically (``8.10`` > ``8.2``)."""
    try:
        have = _parse_version(version)
        need = _parse_version(minimum)
    except ValueError:
        return False
    width = max(len(have), len(need))
    return have + (0,) * (width - len(have)) >= need + (0,) * (width - len(need))


def check_tool(requirement: ToolRequirement, runner: Runner, cwd: Path) -> ToolCheck:
    """Probe one tool and evaluate it against its requirement."""
    label = requirement.label
    program = requirement.command[0]

    if not runner.is_available(program):
        return ToolCheck(label, False, f"{label} not found in PATH")

    try:
        result = runner.execute(requirement.command, cwd=cwd, stream=False, check=False)
    except CommandFailed as e:
        logger.debug("Probe for %s failed: %s", label, e)
        return ToolCheck(label, False, f"{label} not found or not executable")

    if not result.ok:
        return ToolCheck(label, False, f"{label} not found in PATH")

    match = re.search(requirement.pattern, result.stdout + result.stderr)
    if not match:
        if requirement.strict:
            return ToolCheck(label, False, f"Unable to determine {label} version")
        return ToolCheck(label, True, "Available (version not detected)")

    version = match.group(1)
    if requirement.minimum is None:
        return ToolCheck(label, True, f"Version {version}", version)
    if version_at_least(version, requirement.minimum):
        return ToolCheck(
            label, True, f"Version {version} (✓ >= {requirement.minimum})", version
        )
    return ToolCheck(
        label, False, f"Version {version} (❌ requires >= {requirement.minimum})", version
    )


def check_environment(
    runner: Runner,
    cwd: Path,
    requirements: tuple[ToolRequirement, ...] = REQUIREMENTS,
) -> list[ToolCheck]:
    """Probe every required tool (never raises)."""
    return [check_tool(req, runner, cwd) for req in requirements]


def ensure_environment(checks: list[ToolCheck]) -> None:
    """Raise ``EnvironmentCheckFailed`` if any probe failed."""
    failures = {c.tool: c.message for c in checks if not c.ok}
    if failures:
        raise EnvironmentCheckFailed(failures)


def find_php_executable(locations: tuple[str, ...] = PHP_LOCATIONS) -> str:
    """Resolve the PHP binary used for ``artisan`` calls.

    Prefers the ``php`` on PATH, then well-known install locations,
    then falls back to the bare command name.
    """
    on_path = shutil.which("php")
    for candidate in (on_path, *locations):
        if candidate and os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            logger.debug("Using PHP executable: %s", candidate)
            return candidate
    return "php"
