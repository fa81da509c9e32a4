"""
Checkpoint — commit the work of one provisioning step.

    changed .php files? ──yes──▶ pint <those files>
            │
            ▼
        git add .  ──▶  git commit -m <step> --allow-empty

Every executed step gets exactly one commit, even when it changed
nothing (``--allow-empty``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from apiforge.adapters.base import Runner
from apiforge.adapters.vcs.git import GitClient
from apiforge.core.data.anchors import FORMATTER
from apiforge.core.errors import CommandFailed

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".php"

Notify = Callable[[str], None]


def format_changed_sources(
    runner: Runner,
    git: GitClient,
    root: Path,
    notify: Notify | None = None,
) -> list[str]:
    """Run the formatter on pending source files only.

    Formatter problems never block a checkpoint: a missing formatter is
    skipped and a failing one is reported as a warning.

    Returns:
        The files handed to the formatter (empty if it did not run).
    """
    notify = notify or logger.info
    files = git.changed_files(SOURCE_SUFFIX)
    if not files:
        return []

    if not (root / FORMATTER).is_file():
        notify("Pint not found, skipping code formatting")
        return []

    notify("Running Pint to format PHP code...")
    try:
        runner.execute([f"./{FORMATTER}", *files], cwd=root)
    except CommandFailed as e:
        logger.warning("Failed to run Pint: %s", e)
        notify(f"Failed to run Pint: {e}")
        return []
    return files


def checkpoint(
    message: str,
    runner: Runner,
    root: Path,
    *,
    format_sources: bool = True,
    notify: Notify | None = None,
) -> None:
    """Format, stage and commit everything under ``root`` as ``message``."""
    git = GitClient(runner, root)
    if format_sources:
        format_changed_sources(runner, git, root, notify)
    git.add_all()
    git.commit(message, allow_empty=True)
    logger.info("Checkpoint committed: %s", message)
