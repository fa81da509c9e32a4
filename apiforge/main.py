"""
Laravel API Forge — CLI entrypoint.

Usage:
    forge --help
    forge new shop-api
    forge self-update --check
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from apiforge import __version__
from apiforge.core.observability.logging_config import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="forge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to forge.yml (default: FORGE_CONFIG or ~/.config/laravel-api-forge/).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Laravel API Forge — scaffold Laravel API projects."""
    from apiforge.core.config.loader import ConfigError, load_settings

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_logging(debug=debug, verbose=verbose, quiet=quiet)

    try:
        ctx.obj["settings"] = load_settings(ctx.obj["config_path"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


# ── Register sub-commands from apiforge/ui/cli/ ───────────────────

from apiforge.ui.cli.new import new  # noqa: E402
from apiforge.ui.cli.self_update import self_update  # noqa: E402

cli.add_command(new)
cli.add_command(self_update)


if __name__ == "__main__":
    cli()
