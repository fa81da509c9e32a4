"""
Adapter base — the contract between the forge and external tools.

Steps never call ``subprocess`` directly; they go through a runner
that implements this protocol. The real runner streams to the
terminal, the recording runner in ``mock.py`` stands in for it in
tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from apiforge.core.models.command import CommandResult


class Runner(ABC):
    """Abstract command runner.

    Implementations execute a literal argument vector in an explicit
    working directory. They raise ``CommandFailed`` on non-zero exit
    when ``check`` is true and return the result otherwise.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'process', 'mock')."""

    @abstractmethod
    def is_available(self, program: str) -> bool:
        """Check whether ``program`` can be executed. Never raises."""

    @abstractmethod
    def execute(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        stream: bool = True,
        check: bool = True,
    ) -> CommandResult:
        """Run ``command`` in ``cwd``.

        Args:
            command: Argument vector; no shell interpolation.
            cwd: Working directory (the process cwd is never used).
            stream: Forward output to the console as it arrives.
            check: Raise ``CommandFailed`` on non-zero exit.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
