"""
Git client — the version-control operations a checkpoint needs.

Init, identity config, stage, commit, and porcelain status. Every
call runs through a ``Runner`` with an explicit repository root, so
the same client works against the real git binary and the recording
runner used in tests.
"""

from __future__ import annotations

import logging
from pathlib import Path

from apiforge.adapters.base import Runner

logger = logging.getLogger(__name__)


def parse_porcelain(output: str) -> list[str]:
    """Extract paths from ``git status --porcelain`` (v1) output.

    Each line is ``XY <path>``; renames appear as ``XY <old> -> <new>``
    and only the new path is kept. Quoted paths are unquoted.
    """
    paths: list[str] = []
    for line in output.splitlines():
        if len(line) < 4 or not line.strip():
            continue
        path = line[3:].strip()
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if len(path) >= 2 and path[0] == path[-1] == '"':
            path = path[1:-1]
        paths.append(path)
    return paths


class GitClient:
    """Thin wrapper over the git CLI bound to one repository root."""

    def __init__(self, runner: Runner, root: Path):
        self.runner = runner
        self.root = root

    def _git(self, *args: str, stream: bool = True, check: bool = True):
        return self.runner.execute(
            ["git", *args], cwd=self.root, stream=stream, check=check
        )

    def init(self) -> None:
        self._git("init")

    def set_identity(self, email: str = "", name: str = "") -> None:
        """Write local ``user.email`` / ``user.name`` for whichever is given."""
        if email:
            self._git("config", "user.email", email)
        if name:
            self._git("config", "user.name", name)

    def add_all(self) -> None:
        self._git("add", ".")

    def commit(self, message: str, *, allow_empty: bool = True) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._git(*args)

    def status_porcelain(self) -> list[str]:
        """Paths with pending changes; empty if status cannot be read."""
        result = self._git("status", "--porcelain", stream=False, check=False)
        if not result.ok:
            logger.debug("git status failed in %s: %s", self.root, result.stderr.strip())
            return []
        return parse_porcelain(result.stdout)

    def changed_files(self, suffix: str) -> list[str]:
        """Pending paths ending in ``suffix`` that still exist on disk."""
        return [
            path
            for path in self.status_porcelain()
            if Path(path).suffix == suffix and (self.root / path).is_file()
        ]
