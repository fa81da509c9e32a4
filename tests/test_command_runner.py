"""
Tests for the process invoker, the git client, and the mock runner.

Real processes are spawned with the running interpreter so the tests
do not depend on any external tool being installed.
"""

import sys
from pathlib import Path

import pytest

from apiforge.adapters.mock import MockRunner
from apiforge.adapters.shell.command import CommandRunner, colorize_stderr
from apiforge.adapters.vcs.git import GitClient, parse_porcelain
from apiforge.core.errors import CommandFailed, CommandTimedOut
from apiforge.core.models.command import CommandResult

PY = sys.executable


def _runner(lines: list[str], **kwargs) -> CommandRunner:
    return CommandRunner(echo=lines.append, use_tty=False, **kwargs)


# ── Process invoker ──────────────────────────────────────────────────


class TestCommandRunner:
    def test_streams_stdout_and_reports_success(self, tmp_path: Path):
        lines: list[str] = []
        result = _runner(lines).execute([PY, "-c", "print('hello'); print('world')"], cwd=tmp_path)
        assert result.ok
        assert result.stdout == "hello\nworld"
        assert lines[0].startswith("Running: ")
        assert "hello" in lines and "world" in lines
        assert lines[-1] == "✓ Command completed successfully"

    def test_stderr_is_yellow(self, tmp_path: Path):
        lines: list[str] = []
        script = "import sys; sys.stderr.write('careful\\n')"
        result = _runner(lines).execute([PY, "-c", script], cwd=tmp_path)
        assert result.stderr == "careful"
        assert "\x1b[33mcareful\x1b[0m" in lines

    def test_runs_in_given_directory(self, tmp_path: Path):
        result = _runner([]).execute(
            [PY, "-c", "import os; print(os.getcwd())"], cwd=tmp_path, stream=False
        )
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_capture_mode_is_silent(self, tmp_path: Path):
        lines: list[str] = []
        result = _runner(lines).execute([PY, "-c", "print('quiet')"], cwd=tmp_path, stream=False)
        assert result.stdout.strip() == "quiet"
        assert lines == []

    def test_nonzero_exit_raises(self, tmp_path: Path):
        script = "import sys; sys.stderr.write('boom\\n'); sys.exit(3)"
        with pytest.raises(CommandFailed) as exc:
            _runner([]).execute([PY, "-c", script], cwd=tmp_path)
        assert exc.value.exit_code == 3
        assert "boom" in exc.value.stderr

    def test_nonzero_exit_without_check(self, tmp_path: Path):
        result = _runner([]).execute(
            [PY, "-c", "import sys; sys.exit(2)"], cwd=tmp_path, check=False
        )
        assert result.return_code == 2
        assert not result.ok

    def test_timeout_kills_process(self, tmp_path: Path):
        with pytest.raises(CommandTimedOut) as exc:
            _runner([], timeout=0.5).execute(
                [PY, "-c", "import time; time.sleep(10)"], cwd=tmp_path
            )
        assert exc.value.exit_code is None
        assert isinstance(exc.value, CommandFailed)

    def test_missing_program(self, tmp_path: Path):
        with pytest.raises(CommandFailed) as exc:
            _runner([]).execute(["definitely-not-a-real-program-xyz"], cwd=tmp_path)
        assert exc.value.exit_code == 127

    def test_non_executable_program(self, tmp_path: Path):
        tool = tmp_path / "pint"
        tool.write_text("#!/bin/sh\necho formatted\n")
        tool.chmod(0o644)
        with pytest.raises(CommandFailed) as exc:
            _runner([]).execute([str(tool)], cwd=tmp_path)
        assert exc.value.exit_code == 126
        assert "Cannot execute" in exc.value.stderr

    def test_empty_command(self, tmp_path: Path):
        with pytest.raises(ValueError):
            _runner([]).execute([], cwd=tmp_path)


class TestColorizeStderr:
    def test_plain_line_wrapped(self):
        assert colorize_stderr("warn") == "\x1b[33mwarn\x1b[0m"

    def test_coloured_line_untouched(self):
        line = "\x1b[31merror\x1b[0m"
        assert colorize_stderr(line) == line

    def test_empty_line_untouched(self):
        assert colorize_stderr("") == ""


# ── Git client ───────────────────────────────────────────────────────


class TestParsePorcelain:
    def test_status_codes_and_renames(self):
        output = (
            " M app/Models/User.php\n"
            "?? routes/api.php\n"
            "R  old.php -> new.php\n"
            '?? "with space.php"\n'
        )
        assert parse_porcelain(output) == [
            "app/Models/User.php",
            "routes/api.php",
            "new.php",
            "with space.php",
        ]

    def test_empty(self):
        assert parse_porcelain("") == []


class TestGitClient:
    def test_commit_allows_empty(self, tmp_path: Path):
        runner = MockRunner()
        GitClient(runner, tmp_path).commit("Init commit")
        assert runner.commands == [["git", "commit", "-m", "Init commit", "--allow-empty"]]
        assert runner.call_log[0].cwd == tmp_path

    def test_identity_only_for_given_values(self, tmp_path: Path):
        runner = MockRunner()
        GitClient(runner, tmp_path).set_identity(email="dev@example.com")
        assert runner.commands == [["git", "config", "user.email", "dev@example.com"]]

    def test_changed_files_filters_suffix_and_existence(self, tmp_path: Path):
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "User.php").write_text("<?php\n")
        runner = MockRunner()
        runner.set_output(
            ["git", "status", "--porcelain"],
            " M app/User.php\n D app/Gone.php\n?? .env\n",
        )
        assert GitClient(runner, tmp_path).changed_files(".php") == ["app/User.php"]

    def test_status_failure_is_empty(self, tmp_path: Path):
        runner = MockRunner()
        runner.set_failure(["git", "status"], stderr="not a git repository", return_code=128)
        assert GitClient(runner, tmp_path).status_porcelain() == []


# ── Mock runner ──────────────────────────────────────────────────────


class TestMockRunner:
    def test_default_success(self, tmp_path: Path):
        runner = MockRunner()
        result = runner.execute(["composer", "install"], cwd=tmp_path)
        assert result.ok
        assert runner.call_count == 1

    def test_longest_prefix_wins(self, tmp_path: Path):
        runner = MockRunner()
        runner.set_output(["php"], "generic")
        runner.set_output(["php", "--version"], "PHP 8.3.1")
        assert runner.execute(["php", "--version"], cwd=tmp_path).stdout == "PHP 8.3.1"
        assert runner.execute(["php", "-m"], cwd=tmp_path).stdout == "generic"

    def test_failure_raises_with_check(self, tmp_path: Path):
        runner = MockRunner()
        runner.set_failure(["composer"], stderr="no network")
        with pytest.raises(CommandFailed, match="no network"):
            runner.execute(["composer", "require", "x"], cwd=tmp_path)

    def test_custom_response(self, tmp_path: Path):
        runner = MockRunner()
        runner.set_response(["git"], CommandResult.success(["git"], stdout="ok", duration_ms=5))
        result = runner.execute(["git", "status"], cwd=tmp_path)
        assert result.command == ["git", "status"]
        assert result.duration_ms == 5

    def test_availability_set(self):
        runner = MockRunner(available={"php"})
        assert runner.is_available("php")

    def test_reset(self, tmp_path: Path):
        runner = MockRunner()
        runner.execute(["git", "init"], cwd=tmp_path)
        runner.reset()
        assert runner.call_count == 0
