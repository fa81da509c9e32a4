"""
Command result model — what the process invoker hands back.

Failures never arrive as a result: a non-zero exit raises
``CommandFailed`` unless the caller explicitly opts out with
``check=False`` (status probes do).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Outcome of one external command invocation."""

    command: list[str] = Field(default_factory=list)
    return_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the command exited zero."""
        return self.return_code == 0

    @classmethod
    def success(cls, command: list[str], stdout: str = "", **kwargs) -> CommandResult:
        """Create a zero-exit result."""
        return cls(command=command, return_code=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls,
        command: list[str],
        return_code: int = 1,
        stderr: str = "",
        **kwargs,
    ) -> CommandResult:
        """Create a non-zero-exit result."""
        return cls(command=command, return_code=return_code, stderr=stderr, **kwargs)
