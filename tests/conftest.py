"""
Shared test fixtures and configuration.

``write_skeleton`` lays down the subset of a fresh ``laravel new --pest``
project that the provisioning steps edit, so the pipeline can run end
to end against a recording runner.
"""

import json
import textwrap
from pathlib import Path

import pytest

from apiforge.adapters.mock import MockRunner
from apiforge.core.models.project import ProjectContext

ENV_TEMPLATE = textwrap.dedent("""\
    APP_NAME=Laravel
    APP_ENV=local

    DB_CONNECTION=sqlite
    # DB_HOST=127.0.0.1
    # DB_PORT=3306
    # DB_DATABASE=laravel
    # DB_USERNAME=root
    # DB_PASSWORD=

    SESSION_DRIVER=database
    CACHE_STORE=database
""")

USER_MODEL = textwrap.dedent("""\
    <?php

    namespace App\\Models;

    use Illuminate\\Database\\Eloquent\\Factories\\HasFactory;
    use Illuminate\\Foundation\\Auth\\User as Authenticatable;
    use Illuminate\\Notifications\\Notifiable;

    class User extends Authenticatable
    {
        use HasFactory, Notifiable;
    }
""")

BOOTSTRAP_APP = textwrap.dedent("""\
    <?php

    return Application::configure(basePath: dirname(__DIR__))
        ->withRouting(
            web: __DIR__.'/../routes/web.php',
            commands: __DIR__.'/../routes/console.php',
            health: '/up',
        )
        ->create();
""")

PEST_CONFIG = textwrap.dedent("""\
    <?php

    pest()->extend(Tests\\TestCase::class)
     // ->use(Illuminate\\Foundation\\Testing\\RefreshDatabase::class)
        ->in('Feature');

    expect()->extend('toBeOne', function () {
        return $this->toBe(1);
    });

    function something()
    {
        // ..
    }
""")

PERMISSION_CONFIG = "<?php\n\nreturn [\n    'teams' => false,\n];\n"
MODULES_CONFIG = "<?php\n\nreturn [\n    'paths' => [\n        'modules' => base_path('Modules'),\n    ],\n];\n"

COMPOSER_MANIFEST = {
    "name": "laravel/laravel",
    "type": "project",
    "require": {"php": "^8.2", "laravel/framework": "^11.0"},
    "scripts": {
        "post-autoload-dump": [
            "Illuminate\\Foundation\\ComposerScripts::postAutoloadDump",
            "@php artisan package:discover --ansi",
        ],
    },
    "config": {"sort-packages": True},
}


def write_skeleton(root: Path) -> None:
    """Create the generator output the steps expect under ``root``."""
    files = {
        ".env": ENV_TEMPLATE,
        ".env.example": ENV_TEMPLATE,
        "composer.json": json.dumps(COMPOSER_MANIFEST, indent=4) + "\n",
        "app/Models/User.php": USER_MODEL,
        "bootstrap/app.php": BOOTSTRAP_APP,
        "tests/Pest.php": PEST_CONFIG,
        "tests/Feature/ExampleTest.php": "<?php\n\ntest('example', fn () => true);\n",
        "tests/Unit/ExampleTest.php": "<?php\n\ntest('example', fn () => true);\n",
        "vite.config.js": "export default {};\n",
        "database/migrations/0001_01_01_000001_create_cache_table.php": "<?php\n",
        "stubs/model.stub": "stub\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def skeleton(tmp_path: Path) -> Path:
    """An already-generated project directory."""
    root = tmp_path / "shop-api"
    write_skeleton(root)
    return root


@pytest.fixture
def make_project(tmp_path: Path):
    """Factory for a ``ProjectContext`` targeting ``tmp_path / shop-api``."""

    def _make(**flags) -> ProjectContext:
        return ProjectContext.for_directory("shop-api", tmp_path, **flags)

    return _make


@pytest.fixture
def laravel_runner(tmp_path: Path) -> MockRunner:
    """Recording runner whose generator and publish commands create files."""
    root = tmp_path / "shop-api"
    runner = MockRunner()
    runner.on(["laravel", "new"], lambda _cwd: write_skeleton(root))
    runner.on(
        ["php", "artisan", "vendor:publish", "--provider=Spatie\\Permission\\PermissionServiceProvider"],
        lambda cwd: _write(cwd / "config" / "permission.php", PERMISSION_CONFIG),
    )
    runner.on(
        ["php", "artisan", "vendor:publish", "--provider=Nwidart\\Modules\\LaravelModulesServiceProvider"],
        lambda cwd: _write(cwd / "config" / "modules.php", MODULES_CONFIG),
    )
    return runner
