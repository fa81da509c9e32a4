"""
Mock runner — universal test double for the process invoker.

Records every command instead of executing it. Configurable to return
custom results or failures for commands matching a prefix, and to run
a side effect (e.g. lay down the files a generator would create).
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from apiforge.adapters.base import Runner
from apiforge.core.errors import CommandFailed
from apiforge.core.models.command import CommandResult


@dataclass
class RecordedCall:
    """One command the mock received."""

    command: list[str]
    cwd: Path
    stream: bool


class MockRunner(Runner):
    """Recording runner for tests.

    By default every command succeeds with empty output. Responses are
    matched by argv prefix; the longest matching prefix wins.
    """

    def __init__(self, available: bool | set[str] = True):
        self._available = available
        self._responses: dict[tuple[str, ...], CommandResult] = {}
        self._effects: dict[tuple[str, ...], Callable[[Path], None]] = {}
        self._call_log: list[RecordedCall] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[RecordedCall]:
        """All calls this mock has received."""
        return self._call_log

    @property
    def commands(self) -> list[list[str]]:
        return [call.command for call in self._call_log]

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def commit_messages(self) -> list[str]:
        """Messages of every ``git commit -m`` received, in order."""
        messages = []
        for command in self.commands:
            if command[:2] == ["git", "commit"] and "-m" in command:
                messages.append(command[command.index("-m") + 1])
        return messages

    def is_available(self, program: str) -> bool:
        if isinstance(self._available, bool):
            return self._available
        return program in self._available or shutil.which(program) is not None

    def set_response(self, prefix: Sequence[str], result: CommandResult) -> None:
        """Return ``result`` for commands starting with ``prefix``."""
        self._responses[tuple(prefix)] = result

    def set_output(self, prefix: Sequence[str], stdout: str) -> None:
        self.set_response(prefix, CommandResult.success(list(prefix), stdout=stdout))

    def set_failure(
        self,
        prefix: Sequence[str],
        stderr: str = "Mock failure",
        return_code: int = 1,
    ) -> None:
        """Configure commands starting with ``prefix`` to exit non-zero."""
        self.set_response(
            prefix,
            CommandResult.failure(list(prefix), return_code=return_code, stderr=stderr),
        )

    def on(self, prefix: Sequence[str], effect: Callable[[Path], None]) -> None:
        """Run ``effect(cwd)`` whenever a command starting with ``prefix`` runs."""
        self._effects[tuple(prefix)] = effect

    def execute(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        stream: bool = True,
        check: bool = True,
    ) -> CommandResult:
        argv = [str(arg) for arg in command]
        self._call_log.append(RecordedCall(command=argv, cwd=Path(cwd), stream=stream))

        effect = self._match(self._effects, argv)
        if effect is not None:
            effect(Path(cwd))

        result = self._match(self._responses, argv)
        if result is None:
            result = CommandResult.success(argv)
        else:
            result = result.model_copy(update={"command": argv})

        if check and not result.ok:
            raise CommandFailed(argv, result.return_code, result.stderr)
        return result

    @staticmethod
    def _match(table: dict, argv: list[str]):
        best = None
        best_len = -1
        for prefix, value in table.items():
            if tuple(argv[: len(prefix)]) == prefix and len(prefix) > best_len:
                best, best_len = value, len(prefix)
        return best

    def reset(self) -> None:
        """Clear call log, responses and effects."""
        self._call_log.clear()
        self._responses.clear()
        self._effects.clear()
