"""
File templates written verbatim into the generated project.

Git hook scripts (installed under ``.git-hooks/`` with mode 0755) and
the Vite module-asset loader used by the modular layout.
"""

from __future__ import annotations

HOOKS_DIR = ".git-hooks"

SAIL_UTILS = """\
#!/bin/sh

check_and_start_sail() {
    local sail_output=$(./vendor/bin/sail ps 2>/dev/null || echo "")
    local line_count=$(echo "$sail_output" | wc -l | tr -d ' ')

    if [ "$line_count" -eq 1 ] || [ -z "$sail_output" ]; then
        echo "Starting Sail..."
        ./vendor/bin/sail up -d
        sleep 1
    fi
}
"""

PRE_COMMIT = """\
#!/bin/sh
set -e
. "$(dirname "$0")/sail-utils"
check_and_start_sail
./vendor/bin/sail composer lint -- --dirty
echo Committing as $(git config user.email)
"""

PRE_PUSH = """\
#!/bin/sh
set -e
. "$(dirname "$0")/sail-utils"
check_and_start_sail
./vendor/bin/sail composer test -- --parallel --processes=10
echo Pushing as $(git config user.email)
"""

POST_MERGE = """\
#!/bin/sh
set -e
. "$(dirname "$0")/sail-utils"
check_and_start_sail
./vendor/bin/sail composer install --no-scripts
"""

# Hook file name -> content, in install order
GIT_HOOKS: dict[str, str] = {
    "sail-utils": SAIL_UTILS,
    "pre-commit": PRE_COMMIT,
    "pre-push": PRE_PUSH,
    "post-merge": POST_MERGE,
}

VITE_MODULE_LOADER = """\
import { readdir, stat } from 'fs/promises';
import { join } from 'path';

async function collectModuleAssetsPaths(paths, modulesDir) {
    try {
        const modules = await readdir(modulesDir);
        const allPaths = [...paths];

        for (const module of modules) {
            const modulePath = join(modulesDir, module);
            const moduleStats = await stat(modulePath);

            if (moduleStats.isDirectory()) {
                const resourcesPath = join(modulePath, 'resources');

                try {
                    await stat(resourcesPath);

                    const cssPath = join(resourcesPath, 'css', 'app.css');
                    const jsPath = join(resourcesPath, 'js', 'app.js');

                    try {
                        await stat(cssPath);
                        allPaths.push(cssPath);
                    } catch {}

                    try {
                        await stat(jsPath);
                        allPaths.push(jsPath);
                    } catch {}
                } catch {}
            }
        }

        return allPaths;
    } catch (error) {
        console.error('Error collecting module assets:', error);
        return paths;
    }
}

export default collectModuleAssetsPaths;
"""

VITE_CONFIG = """\
import { defineConfig } from 'vite';
import laravel from 'laravel-vite-plugin';
import collectModuleAssetsPaths from './vite-module-loader.js';

async function getConfig() {
    const paths = [
        'resources/css/app.css',
        'resources/js/app.js',
    ];
    const allPaths = await collectModuleAssetsPaths(paths, 'modules');

    return defineConfig({
        plugins: [
            laravel({
                input: allPaths,
                refresh: true,
            }),
        ],
    });
}

export default getConfig();
"""

NEXT_STEPS = """\
🚀 Next steps:
   cd {name}
   ./vendor/bin/sail up -d
   ./vendor/bin/sail artisan migrate

📦 Frontend assets (using pnpm):
   ./vendor/bin/sail pnpm install    # Install frontend packages
   ./vendor/bin/sail pnpm build      # Build frontend assets

📚 Documentation:
   API docs will be available in: docs/v1/
"""
