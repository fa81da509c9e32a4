"""
Tests for CLI commands — global options, new, and self-update.
"""

import hashlib
from pathlib import Path

import pytest
from click.testing import CliRunner

from apiforge import __version__
from apiforge.adapters.mock import MockRunner
from apiforge.core.models.release import Release, ReleaseAsset
from apiforge.core.services.self_update import SelfUpdater
from apiforge.main import cli
from apiforge.ui.cli import new as new_cmd
from apiforge.ui.cli import self_update as self_update_cmd

VERSIONS = {
    ("php", "--version"): "PHP 8.3.4 (cli)",
    ("composer", "--version"): "Composer version 2.7.2",
    ("laravel", "--version"): "Laravel Installer 5.8.3",
    ("git", "--version"): "git version 2.44.0",
}


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("FORGE_CONFIG", raising=False)
    monkeypatch.delenv("FORGE_LOG_FILE", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Laravel API Forge" in result.output
        assert "new" in result.output
        assert "self-update" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_bad_config_exits(self, tmp_path: Path):
        config = tmp_path / "forge.yml"
        config.write_text("release_repo: nope\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "new", "x"])
        assert result.exit_code == 1
        assert "Invalid forge configuration" in result.output


# ── new ──────────────────────────────────────────────────────────────


class TestNewCommand:
    @pytest.fixture
    def runner(self, laravel_runner: MockRunner, tmp_path: Path, monkeypatch) -> MockRunner:
        for command, output in VERSIONS.items():
            laravel_runner.set_output(list(command), output)
        monkeypatch.setattr(new_cmd, "_make_runner", lambda settings: laravel_runner)
        monkeypatch.setattr(
            "apiforge.core.services.environment.find_php_executable", lambda: "php"
        )
        monkeypatch.chdir(tmp_path)
        return laravel_runner

    def test_non_interactive_run(self, runner: MockRunner, tmp_path: Path):
        result = CliRunner().invoke(cli, ["new", "shop-api", "--rbac", "--no-interaction"])
        assert result.exit_code == 0, result.output
        assert "✅ RBAC Package" in result.output
        assert "❌ Redis Cache" in result.output
        assert "has been created successfully" in result.output
        assert "cd shop-api" in result.output
        assert runner.commit_messages()[-1] == "Finalize RBAC configuration"
        assert len(runner.commit_messages()) == 9
        assert not any(c[:2] == ["git", "config"] for c in runner.commands)

    def test_prompts_default_to_yes(self, runner: MockRunner):
        result = CliRunner().invoke(
            cli, ["new", "shop-api"], input="\n\n\ndev@example.com\nDev\n"
        )
        assert result.exit_code == 0, result.output
        messages = runner.commit_messages()
        assert "Setup Redis cache" in messages
        assert "Setup modular architecture" in messages
        assert ["git", "config", "user.email", "dev@example.com"] in runner.commands

    def test_explicit_flags_skip_prompts(self, runner: MockRunner):
        result = CliRunner().invoke(
            cli,
            ["new", "shop-api", "--no-redis", "--no-rbac", "--no-modules",
             "--git-email", "", "--git-name", ""],
        )
        assert result.exit_code == 0, result.output
        assert "Do you want" not in result.output
        assert len(runner.commit_messages()) == 7

    def test_environment_failure(self, runner: MockRunner):
        runner.set_output(["php", "--version"], "PHP 8.1.0 (cli)")
        result = CliRunner().invoke(cli, ["new", "shop-api", "--no-interaction"])
        assert result.exit_code == 1
        assert "❌ PHP" in result.output
        assert "https://www.php.net/downloads.php" in result.output
        assert not any(c[:2] == ["laravel", "new"] for c in runner.commands)

    def test_existing_directory(self, runner: MockRunner, tmp_path: Path):
        (tmp_path / "shop-api").mkdir()
        result = CliRunner().invoke(cli, ["new", "shop-api", "--no-interaction"])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert not any(c[:2] == ["laravel", "new"] for c in runner.commands)

    def test_invalid_name(self, runner: MockRunner):
        result = CliRunner().invoke(cli, ["new", "a/b", "--no-interaction"])
        assert result.exit_code == 1
        assert "Invalid project name" in result.output

    def test_step_failure_exits_nonzero(self, runner: MockRunner):
        runner.set_failure(["composer", "require", "hotmeteor/spectator"], stderr="conflict")
        result = CliRunner().invoke(cli, ["new", "shop-api", "--no-interaction"])
        assert result.exit_code == 1
        assert "Installing Spectator" in result.output
        assert "Setup Laravel Sail" not in runner.commit_messages()


# ── self-update ──────────────────────────────────────────────────────


class _Feed:
    repo = "goez-tools/laravel-api-forge"

    def __init__(self, release: Release | None, payload: bytes = b"new"):
        self.release = release
        self.payload = payload

    def latest_release(self, stability="stable"):
        if self.release and self.release.matches(stability):
            return self.release
        return None

    def download(self, asset, dest):
        dest.write(self.payload)
        return len(self.payload)

    def fetch_checksum(self, asset):
        return hashlib.sha256(self.payload).hexdigest()


class TestSelfUpdateCommand:
    @pytest.fixture
    def binary(self, tmp_path: Path) -> Path:
        path = tmp_path / "forge"
        path.write_bytes(b"old")
        return path

    def _install(self, monkeypatch, binary: Path, release: Release | None, packaged=True):
        def make(settings, stability):
            return SelfUpdater(_Feed(release), binary, __version__, stability, packaged=packaged)

        monkeypatch.setattr(self_update_cmd, "_make_updater", make)

    def _release(self, tag: str, prerelease: bool = False) -> Release:
        assets = [
            ReleaseAsset(name="forge", browser_download_url="https://x.test/forge"),
            ReleaseAsset(name="forge.sha256", browser_download_url="https://x.test/forge.sha256"),
        ]
        return Release(tag_name=tag, prerelease=prerelease, assets=assets)

    def test_not_packaged(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release("v9.9.9"), packaged=False)
        result = CliRunner().invoke(cli, ["self-update"])
        assert result.exit_code == 1
        assert "can only be used when running from a packaged binary" in result.output

    def test_check_reports_new_version(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release("v9.9.9"))
        result = CliRunner().invoke(cli, ["self-update", "--check"])
        assert result.exit_code == 0
        assert "A new version is available" in result.output
        assert "releases/tag/v9.9.9" in result.output
        assert binary.read_bytes() == b"old"

    def test_check_latest(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release(f"v{__version__}"))
        result = CliRunner().invoke(cli, ["self-update", "--check"])
        assert result.exit_code == 0
        assert "latest version installed" in result.output

    def test_update_and_rollback(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release("v9.9.9"))
        result = CliRunner().invoke(cli, ["self-update"])
        assert result.exit_code == 0, result.output
        assert f"Successfully updated from {__version__} to 9.9.9" in result.output
        assert binary.read_bytes() == b"new"

        result = CliRunner().invoke(cli, ["self-update", "--rollback"])
        assert result.exit_code == 0
        assert "Successfully rolled back" in result.output
        assert binary.read_bytes() == b"old"

    def test_rollback_without_backup(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, None)
        result = CliRunner().invoke(cli, ["self-update", "--rollback"])
        assert result.exit_code == 1
        assert "No backup version found" in result.output

    def test_pre_release_flag(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release("v9.9.9-beta.1", prerelease=True))
        result = CliRunner().invoke(cli, ["self-update", "--check"])
        assert "latest version installed" in result.output
        result = CliRunner().invoke(cli, ["self-update", "--check", "--pre-release"])
        assert "A new version is available" in result.output

    def test_force_same_version(self, monkeypatch, binary: Path):
        self._install(monkeypatch, binary, self._release(f"v{__version__}"))
        result = CliRunner().invoke(cli, ["self-update", "--force"])
        assert result.exit_code == 0, result.output
        assert "Force update completed" in result.output
        assert binary.read_bytes() == b"new"
