"""
Tests for the environment probe — tool detection and version minimums.
"""

from pathlib import Path

import pytest

from apiforge.adapters.mock import MockRunner
from apiforge.core.errors import EnvironmentCheckFailed
from apiforge.core.services.environment import (
    REQUIREMENTS,
    check_environment,
    check_tool,
    ensure_environment,
    find_php_executable,
    version_at_least,
)

GOOD_OUTPUT = {
    ("php", "--version"): "PHP 8.3.4 (cli) (built: Mar 12 2024)",
    ("composer", "--version"): "Composer version 2.7.2 2024-03-11",
    ("laravel", "--version"): "Laravel Installer 5.8.3",
    ("git", "--version"): "git version 2.44.0",
}


def healthy_runner() -> MockRunner:
    runner = MockRunner()
    for command, output in GOOD_OUTPUT.items():
        runner.set_output(list(command), output)
    return runner


def _requirement(label: str):
    return next(r for r in REQUIREMENTS if r.label == label)


class TestVersionAtLeast:
    @pytest.mark.parametrize(
        "version,minimum,expected",
        [
            ("8.2", "8.2", True),
            ("8.10", "8.2", True),
            ("8.1", "8.2", False),
            ("5.0.0", "5.0", True),
            ("4.9.9", "5.0", False),
            ("garbage", "5.0", False),
        ],
    )
    def test_numeric_comparison(self, version, minimum, expected):
        assert version_at_least(version, minimum) is expected


class TestCheckTool:
    def test_php_passes(self, tmp_path: Path):
        check = check_tool(_requirement("PHP"), healthy_runner(), tmp_path)
        assert check.ok
        assert check.version == "8.3"
        assert check.message == "Version 8.3 (✓ >= 8.2)"

    def test_php_too_old(self, tmp_path: Path):
        runner = healthy_runner()
        runner.set_output(["php", "--version"], "PHP 8.1.27 (cli)")
        check = check_tool(_requirement("PHP"), runner, tmp_path)
        assert not check.ok
        assert "requires >= 8.2" in check.message

    def test_installer_version_unparseable_is_failure(self, tmp_path: Path):
        runner = healthy_runner()
        runner.set_output(["laravel", "--version"], "something unexpected")
        check = check_tool(_requirement("Laravel Installer"), runner, tmp_path)
        assert not check.ok
        assert check.message == "Unable to determine Laravel Installer version"

    def test_composer_without_version_still_ok(self, tmp_path: Path):
        runner = healthy_runner()
        runner.set_output(["composer", "--version"], "Composer (dev build)")
        check = check_tool(_requirement("Composer"), runner, tmp_path)
        assert check.ok
        assert check.message == "Available (version not detected)"

    def test_not_on_path(self, tmp_path: Path):
        runner = MockRunner(available=False)
        check = check_tool(_requirement("Git"), runner, tmp_path)
        assert not check.ok
        assert check.message == "Git not found in PATH"
        assert runner.call_count == 0

    def test_probe_exit_nonzero(self, tmp_path: Path):
        runner = healthy_runner()
        runner.set_failure(["git", "--version"])
        check = check_tool(_requirement("Git"), runner, tmp_path)
        assert not check.ok

    def test_probe_is_silent(self, tmp_path: Path):
        runner = healthy_runner()
        check_environment(runner, tmp_path)
        assert all(not call.stream for call in runner.call_log)


class TestEnsureEnvironment:
    def test_all_good(self, tmp_path: Path):
        ensure_environment(check_environment(healthy_runner(), tmp_path))

    def test_failures_collected(self, tmp_path: Path):
        runner = healthy_runner()
        runner.set_output(["php", "--version"], "PHP 7.4.0")
        runner.set_failure(["git", "--version"])
        with pytest.raises(EnvironmentCheckFailed) as exc:
            ensure_environment(check_environment(runner, tmp_path))
        assert set(exc.value.failures) == {"PHP", "Git"}


class TestFindPhpExecutable:
    def test_prefers_path(self, tmp_path: Path, monkeypatch):
        php = tmp_path / "php"
        php.write_text("#!/bin/sh\n")
        php.chmod(0o755)
        monkeypatch.setattr("shutil.which", lambda name: str(php))
        assert find_php_executable(locations=()) == str(php)

    def test_known_location(self, tmp_path: Path, monkeypatch):
        php = tmp_path / "php"
        php.write_text("#!/bin/sh\n")
        php.chmod(0o755)
        monkeypatch.setattr("shutil.which", lambda name: None)
        assert find_php_executable(locations=(str(tmp_path / "missing"), str(php))) == str(php)

    def test_fallback(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: None)
        assert find_php_executable(locations=()) == "php"
