"""
Process invoker — the single place external commands are executed.

Every generator, composer, artisan, git and formatter call made by a
provisioning step goes through ``CommandRunner.execute``. Output is
streamed to the console as it arrives so long installs stay visible:

    - stdout is forwarded verbatim (colour codes preserved)
    - stderr is forwarded in yellow unless it is already coloured

When our own stdout is a terminal the child's stdout is attached to a
pseudo-terminal, since many tools drop colour when they detect a pipe.
Otherwise both pipes are read concurrently with ``selectors``.
"""

from __future__ import annotations

import codecs
import logging
import os
import re
import selectors
import shlex
import shutil
import subprocess
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from apiforge.adapters.base import Runner
from apiforge.core.errors import CommandFailed, CommandTimedOut
from apiforge.core.models.command import CommandResult

logger = logging.getLogger(__name__)

# Hard ceiling for one command
DEFAULT_TIMEOUT = 300

# Forces colour output from tools that sniff the environment
COLOR_ENV = {
    "FORCE_COLOR": "1",
    "TERM": "xterm-256color",
    "COLORTERM": "truecolor",
}

ANSI_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")
_YELLOW = "\x1b[33m"
_RESET = "\x1b[0m"

Echo = Callable[[str], None]


def _stdout_echo(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def colorize_stderr(line: str) -> str:
    """Wrap a stderr line in yellow unless it already carries colour."""
    if not line or ANSI_SGR_RE.search(line):
        return line
    return f"{_YELLOW}{line}{_RESET}"


def tty_supported() -> bool:
    """Whether a pseudo-terminal can be attached to child processes."""
    if os.name != "posix":
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


class _LineBuffer:
    """Split decoded chunks into lines, holding back a trailing partial line."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        rest = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return [rest.rstrip("\r")] if rest else []


class CommandRunner(Runner):
    """Execute commands with live output, a timeout, and typed failures.

    Args:
        timeout: Seconds before a command is killed (default 300).
        echo: Console sink, one call per output line.
        use_tty: Force (True) or forbid (False) pseudo-terminal mode.
            ``None`` detects it from stdout.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        echo: Echo | None = None,
        use_tty: bool | None = None,
    ):
        self.timeout = timeout
        self._echo = echo or _stdout_echo
        self._use_tty = use_tty

    @property
    def name(self) -> str:
        return "process"

    def is_available(self, program: str) -> bool:
        return shutil.which(program) is not None

    def execute(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        stream: bool = True,
        check: bool = True,
    ) -> CommandResult:
        argv = [str(arg) for arg in command]
        if not argv:
            raise ValueError("Cannot execute an empty command")

        logger.debug("Executing: %s (cwd=%s)", argv, cwd)
        start = time.monotonic()

        if stream:
            self._echo(f"Running: {shlex.join(argv)}")

        try:
            if not stream:
                return_code, stdout, stderr = self._capture(argv, cwd)
            elif self._tty_mode():
                return_code, stdout, stderr = self._stream_pty(argv, cwd)
            else:
                return_code, stdout, stderr = self._stream_pipes(argv, cwd)
        except FileNotFoundError as e:
            raise CommandFailed(argv, 127, f"Command not found: {e}") from e
        except OSError as e:
            raise CommandFailed(argv, 126, f"Cannot execute: {e}") from e

        result = CommandResult(
            command=argv,
            return_code=return_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

        if not result.ok:
            logger.info("Command exited %d: %s", return_code, argv)
            if check:
                raise CommandFailed(argv, return_code, stderr)
        elif stream:
            self._echo("✓ Command completed successfully")

        return result

    # ── Modes ───────────────────────────────────────────────────

    def _tty_mode(self) -> bool:
        if self._use_tty is None:
            return tty_supported()
        return self._use_tty

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(COLOR_ENV)
        return env

    def _capture(self, argv: list[str], cwd: Path) -> tuple[int, str, str]:
        """Run silently and return (code, stdout, stderr)."""
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env(),
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimedOut(argv, self.timeout) from e
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    def _stream_pipes(self, argv: list[str], cwd: Path) -> tuple[int, str, str]:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=self._env(),
        )
        assert proc.stdout is not None and proc.stderr is not None
        streams = {
            proc.stdout.fileno(): "stdout",
            proc.stderr.fileno(): "stderr",
        }
        try:
            return self._pump(proc, argv, streams)
        finally:
            proc.stdout.close()
            proc.stderr.close()

    def _stream_pty(self, argv: list[str], cwd: Path) -> tuple[int, str, str]:
        import pty

        master_fd, slave_fd = pty.openpty()
        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd),
                stdout=slave_fd,
                stderr=subprocess.PIPE,
                env=self._env(),
                close_fds=True,
            )
        except BaseException:
            os.close(master_fd)
            raise
        finally:
            # Child holds its own copy
            os.close(slave_fd)

        assert proc.stderr is not None
        streams = {master_fd: "stdout", proc.stderr.fileno(): "stderr"}
        try:
            return self._pump(proc, argv, streams)
        finally:
            proc.stderr.close()
            os.close(master_fd)

    # ── Streaming loop ──────────────────────────────────────────

    def _pump(
        self,
        proc: subprocess.Popen,
        argv: list[str],
        streams: dict[int, str],
    ) -> tuple[int, str, str]:
        """Forward both streams until EOF, honouring the deadline."""
        deadline = time.monotonic() + self.timeout
        buffers = {source: _LineBuffer() for source in streams.values()}
        captured: dict[str, list[str]] = {"stdout": [], "stderr": []}

        sel = selectors.DefaultSelector()
        try:
            for fd, source in streams.items():
                sel.register(fd, selectors.EVENT_READ, source)

            open_streams = len(streams)
            while open_streams > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._kill(proc)
                    raise CommandTimedOut(argv, self.timeout)

                for key, _ in sel.select(timeout=remaining):
                    try:
                        chunk = os.read(key.fd, 4096)
                    except OSError:
                        # EIO from a pty master once the child has exited
                        chunk = b""
                    if not chunk:
                        sel.unregister(key.fd)
                        open_streams -= 1
                        continue
                    self._emit(key.data, buffers[key.data].feed(chunk), captured)
        finally:
            sel.close()

        for source, buffer in buffers.items():
            self._emit(source, buffer.flush(), captured)

        try:
            proc.wait(timeout=max(deadline - time.monotonic(), 0.1))
        except subprocess.TimeoutExpired as e:
            self._kill(proc)
            raise CommandTimedOut(argv, self.timeout) from e

        return (
            proc.returncode,
            "\n".join(captured["stdout"]),
            "\n".join(captured["stderr"]),
        )

    def _emit(
        self,
        source: str,
        lines: list[str],
        captured: dict[str, list[str]],
    ) -> None:
        for line in lines:
            captured[source].append(line)
            if source == "stderr":
                self._echo(colorize_stderr(line))
            else:
                self._echo(line)

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        proc.wait()
