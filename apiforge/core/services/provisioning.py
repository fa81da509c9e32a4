"""
Provisioning steps — what ``forge new`` does to a fresh Laravel project.

``build_steps()`` returns the fixed, ordered step list the pipeline
engine runs. Gated steps carry a predicate over the frozen
``ProjectContext``. RBAC finalisation runs after Sail setup.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from apiforge.core.data import anchors, templates
from apiforge.core.engine.pipeline import Step, StepRuntime
from apiforge.core.errors import FileOperationFailed
from apiforge.core.services import patcher

logger = logging.getLogger(__name__)

HOOK_MODE = 0o755


# ═══════════════════════════════════════════════════════════════════
#  Filesystem helpers
# ═══════════════════════════════════════════════════════════════════


def _write(path: Path, content: str, mode: int | None = None) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)
    except OSError as e:
        raise FileOperationFailed(path, f"Cannot write file ({e.strerror})") from e


def _remove(path: Path) -> bool:
    """Delete a file or directory tree if present."""
    try:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            return False
    except OSError as e:
        raise FileOperationFailed(path, f"Cannot remove ({e.strerror})") from e
    return True


# ═══════════════════════════════════════════════════════════════════
#  Step actions
# ═══════════════════════════════════════════════════════════════════


def create_project(rt: StepRuntime) -> None:
    rt.run(
        "laravel", "new", rt.project.name, "--pest", "--no-interaction",
        cwd=rt.project.parent_dir,
    )


def initialize_git(rt: StepRuntime) -> None:
    git = rt.git
    git.init()
    git.set_identity(rt.project.git_email, rt.project.git_name)


def adjust_tests(rt: StepRuntime) -> None:
    root = rt.root
    for rel in anchors.EXAMPLE_TESTS:
        _remove(root / rel)
    for rel in anchors.TEST_KEEP_FILES:
        _write(root / rel, "")

    pest = root / anchors.PEST_CONFIG
    patcher.patch_file(pest, anchors.PEST_REPLACEMENTS, required=True)
    patcher.regex_edit(pest, [
        (anchors.PEST_EXTEND_PATTERN, anchors.PEST_EXTEND_REPLACEMENT),
        (anchors.PEST_FUNCTION_PATTERN, anchors.PEST_FUNCTION_REPLACEMENT),
    ])


def setup_api(rt: StepRuntime) -> None:
    rt.artisan("install:api", "--no-interaction")
    patcher.patch_file(rt.root / anchors.USER_MODEL, anchors.USER_MODEL_API_TOKENS, required=True)
    patcher.patch_file(rt.root / anchors.BOOTSTRAP_APP, anchors.BOOTSTRAP_API_PREFIX, required=True)
    _write(rt.root / "docs" / "v1" / ".gitkeep", "")


def setup_redis(rt: StepRuntime) -> None:
    _remove(rt.root / anchors.CACHE_MIGRATION)
    patcher.update_env_files(rt.root, anchors.ENV_REDIS_CACHE)


def setup_rbac(rt: StepRuntime) -> None:
    rt.composer("require", "binary-cats/laravel-rbac")
    rt.artisan(
        "vendor:publish",
        "--provider=Spatie\\Permission\\PermissionServiceProvider",
        "--no-interaction",
    )
    rt.artisan("vendor:publish", "--tag=rbac-config", "--no-interaction")

    _write(rt.root / "app" / "Abilities" / ".gitkeep", "")
    patcher.patch_file(rt.root / anchors.PERMISSION_CONFIG, anchors.PERMISSION_TEAMS, required=True)
    patcher.patch_file(rt.root / anchors.USER_MODEL, anchors.USER_MODEL_ROLES, required=True)

    rt.composer("update", "--lock")


def _allow_merge_plugin(manifest: dict) -> None:
    config = manifest.setdefault("config", {})
    config.setdefault("allow-plugins", {})[anchors.MERGE_PLUGIN] = True


def _merge_module_manifests(manifest: dict) -> None:
    manifest.setdefault("extra", {})["merge-plugin"] = {
        "include": list(anchors.MERGE_PLUGIN_INCLUDE),
    }


def setup_modules(rt: StepRuntime) -> None:
    root = rt.root
    # Must precede the require below
    patcher.update_manifest(root, _allow_merge_plugin)

    rt.composer("require", "nwidart/laravel-modules")
    rt.artisan(
        "vendor:publish",
        "--provider=Nwidart\\Modules\\LaravelModulesServiceProvider",
        "--no-interaction",
    )

    _remove(root / "stubs")
    _write(root / "modules" / ".gitkeep", "")
    _write(root / "modules_statuses.json", "{}")

    patcher.patch_file(root / anchors.MODULES_CONFIG, anchors.MODULES_PATH, required=True)
    patcher.update_manifest(root, _merge_module_manifests)
    _write(root / anchors.VITE_MODULE_LOADER, templates.VITE_MODULE_LOADER)
    _write(root / anchors.VITE_CONFIG, templates.VITE_CONFIG)

    rt.composer("update", "--lock")


def install_data(rt: StepRuntime) -> None:
    rt.composer("require", "spatie/laravel-data")
    rt.artisan(
        "vendor:publish",
        "--provider=Spatie\\LaravelData\\LaravelDataServiceProvider",
        "--tag=data-config",
        "--no-interaction",
    )


def install_spectator(rt: StepRuntime) -> None:
    rt.composer("require", "hotmeteor/spectator", "--dev")
    rt.artisan("vendor:publish", "--provider=Spectator\\SpectatorServiceProvider", "--no-interaction")
    patcher.append_to_env_files(rt.root, anchors.SPEC_PATH_ENTRY)


def setup_sail(rt: StepRuntime) -> None:
    patcher.update_env_files(rt.root, anchors.sail_database(rt.project.name))
    rt.artisan("sail:install", "--with=mysql,redis,mailpit", "--no-interaction")


def _wire_hooks(manifest: dict) -> None:
    patcher.add_script(manifest, "post-autoload-dump", anchors.HOOKS_PATH_SCRIPT)
    manifest.setdefault("scripts", {})["lint"] = list(anchors.LINT_SCRIPT)


def setup_git_hooks(rt: StepRuntime) -> None:
    hooks_dir = rt.root / templates.HOOKS_DIR
    for name, content in templates.GIT_HOOKS.items():
        _write(hooks_dir / name, content, mode=HOOK_MODE)
    patcher.update_manifest(rt.root, _wire_hooks)


def _insert_rbac_reset(manifest: dict) -> None:
    inserted = patcher.insert_script_after(
        manifest,
        "post-autoload-dump",
        anchors.RBAC_RESET_AFTER,
        anchors.RBAC_RESET_SCRIPT,
    )
    if not inserted:
        logger.warning(
            "%r not found in post-autoload-dump; rbac:reset hook not added",
            anchors.RBAC_RESET_AFTER,
        )


def finalize_rbac(rt: StepRuntime) -> None:
    patcher.update_manifest(rt.root, _insert_rbac_reset)


def finalize(rt: StepRuntime) -> None:
    rt.notify("✓ All steps completed successfully")


# ═══════════════════════════════════════════════════════════════════
#  Step catalog
# ═══════════════════════════════════════════════════════════════════


def _redis(p) -> bool:
    return p.use_redis


def _rbac(p) -> bool:
    return p.use_rbac


def _modules(p) -> bool:
    return p.use_modules


def build_steps() -> list[Step]:
    """The fixed provisioning sequence, in execution order."""
    return [
        Step("Creating Laravel project", create_project),
        Step("Initializing Git repository", initialize_git,
             checkpoint="Init commit", format_sources=False),
        Step("Adjusting test configuration", adjust_tests,
             checkpoint="Adjust test configuration"),
        Step("Setting up API environment", setup_api,
             checkpoint="Setup API environment"),
        Step("Setting up Redis cache", setup_redis,
             checkpoint="Setup Redis cache", when=_redis),
        Step("Setting up RBAC package", setup_rbac,
             checkpoint="Setup RBAC package", when=_rbac),
        Step("Setting up modular architecture", setup_modules,
             checkpoint="Setup modular architecture", when=_modules),
        Step("Installing Laravel Data", install_data,
             checkpoint="Install Laravel Data package"),
        Step("Installing Spectator", install_spectator,
             checkpoint="Install Spectator package"),
        Step("Setting up Laravel Sail", setup_sail,
             checkpoint="Setup Laravel Sail"),
        Step("Setting up Git hooks", setup_git_hooks,
             checkpoint="Setup Git hooks"),
        Step("Finalizing RBAC configuration", finalize_rbac,
             checkpoint="Finalize RBAC configuration", when=_rbac),
        Step("Finalizing setup", finalize),
    ]
