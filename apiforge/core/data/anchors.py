"""
Anchor table — every literal the patcher searches for in generated files.

The anchors match the skeleton produced by the Laravel installer
(``laravel new --pest``, installer >= 5) and the config files published
by the packages the pipeline installs. When the generator's templates
change, this is the only file that needs updating.

Each entry is ``(search, replace)``; tables are applied in order.
"""

from __future__ import annotations

# ── Relative paths of the files the pipeline edits ──────────────

ENV_FILES = (".env", ".env.example")
MANIFEST_FILE = "composer.json"
USER_MODEL = "app/Models/User.php"
BOOTSTRAP_APP = "bootstrap/app.php"
PEST_CONFIG = "tests/Pest.php"
PERMISSION_CONFIG = "config/permission.php"
MODULES_CONFIG = "config/modules.php"
VITE_CONFIG = "vite.config.js"
VITE_MODULE_LOADER = "vite-module-loader.js"
CACHE_MIGRATION = "database/migrations/0001_01_01_000001_create_cache_table.php"
EXAMPLE_TESTS = ("tests/Feature/ExampleTest.php", "tests/Unit/ExampleTest.php")
TEST_KEEP_FILES = ("tests/Feature/.gitkeep", "tests/Unit/.gitkeep")
FORMATTER = "vendor/bin/pint"

Replacement = tuple[str, str]

# ── Test configuration ──────────────────────────────────────────

PEST_REPLACEMENTS: list[Replacement] = [
    (
        "// ->use(Illuminate\\Foundation\\Testing\\RefreshDatabase::class)",
        "->use(Illuminate\\Foundation\\Testing\\LazilyRefreshDatabase::class)",
    ),
]

# Structural edits: (pattern, replacement), DOTALL, non-greedy.
# Already commented-out blocks are left alone.
PEST_EXTEND_PATTERN = r"(?<!// )expect\(\)->extend.*?\}\);"
PEST_EXTEND_REPLACEMENT = (
    "// expect()->extend('toBeOne', function () {\n"
    "//    return $this->toBe(1);\n"
    "//});"
)
PEST_FUNCTION_PATTERN = r"(?<!// )function something\(\).*?\}"
PEST_FUNCTION_REPLACEMENT = "// function something()\n//{\n//    // ..\n//}"

# ── API environment ─────────────────────────────────────────────

USER_MODEL_API_TOKENS: list[Replacement] = [
    (
        "use Illuminate\\Foundation\\Auth\\User as Authenticatable;",
        "use Illuminate\\Foundation\\Auth\\User as Authenticatable;\n"
        "use Laravel\\Sanctum\\HasApiTokens;",
    ),
    (
        "use HasFactory, Notifiable;",
        "use HasApiTokens, HasFactory, Notifiable;",
    ),
]

BOOTSTRAP_API_PREFIX: list[Replacement] = [
    (
        "health: '/up',",
        "health: '/up',\n        apiPrefix: 'v1',",
    ),
]

# ── Cache ───────────────────────────────────────────────────────

ENV_REDIS_CACHE: list[Replacement] = [
    ("CACHE_STORE=database", "CACHE_STORE=redis"),
]

# ── RBAC ────────────────────────────────────────────────────────

PERMISSION_TEAMS: list[Replacement] = [
    ("'teams' => false,", "'teams' => true,"),
]

USER_MODEL_ROLES: list[Replacement] = [
    (
        "use Laravel\\Sanctum\\HasApiTokens;",
        "use Laravel\\Sanctum\\HasApiTokens;\nuse Spatie\\Permission\\Traits\\HasRoles;",
    ),
    (
        "use HasApiTokens, HasFactory, Notifiable;",
        "use HasApiTokens, HasFactory, HasRoles, Notifiable;",
    ),
]

RBAC_RESET_AFTER = "@php artisan package:discover --ansi"
RBAC_RESET_SCRIPT = "@php artisan rbac:reset"

# ── Modules ─────────────────────────────────────────────────────

MODULES_PATH: list[Replacement] = [
    (
        "'modules' => base_path('Modules'),",
        "'modules' => base_path('modules'),",
    ),
]

MERGE_PLUGIN = "wikimedia/composer-merge-plugin"
MERGE_PLUGIN_INCLUDE = ["modules/*/composer.json"]

# ── Sail ────────────────────────────────────────────────────────


def sail_database(project_name: str) -> list[Replacement]:
    """MySQL connection block for the Sail containers."""
    return [
        ("DB_CONNECTION=sqlite", "DB_CONNECTION=mysql"),
        ("# DB_HOST=127.0.0.1", "DB_HOST=mysql"),
        ("# DB_PORT=3306", "DB_PORT=3306"),
        ("# DB_DATABASE=laravel", f"DB_DATABASE={project_name}"),
        ("# DB_USERNAME=root", "DB_USERNAME=sail"),
        ("# DB_PASSWORD=", "DB_PASSWORD=password"),
    ]


# ── Spectator ───────────────────────────────────────────────────

SPEC_PATH_ENTRY = "\nSPEC_PATH=docs\n"

# ── Git hooks ───────────────────────────────────────────────────

HOOKS_PATH_SCRIPT = "git config --local core.hooksPath .git-hooks/ || exit 0"
LINT_SCRIPT = ["vendor/bin/pint"]
