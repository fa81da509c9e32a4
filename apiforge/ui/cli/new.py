"""
CLI command for creating a new Laravel API project.

Collects every input up front (environment probe, feature flags, git
identity), freezes them into a ``ProjectContext``, then hands off to
the provisioning pipeline.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from apiforge.adapters.base import Runner
from apiforge.core.config.loader import ForgeSettings


def _make_runner(settings: ForgeSettings) -> Runner:
    from apiforge.adapters.shell.command import CommandRunner

    return CommandRunner(timeout=settings.command_timeout, echo=click.echo)


def _ask_feature(flag: bool | None, question: str, interactive: bool) -> bool:
    if flag is not None:
        return flag
    if not interactive:
        return False
    return click.confirm(question, default=True)


def _ask_optional(prompt: str, given: str | None, interactive: bool) -> str:
    if given is not None:
        return given.strip()
    if not interactive:
        return ""
    return click.prompt(prompt, default="", show_default=False).strip()


def _render_event(event: dict) -> None:
    kind = event["type"]
    if kind == "step_start":
        click.echo()
        click.secho(f"▶ {event['step']}", fg="cyan", bold=True)
    elif kind == "checkpoint":
        click.secho(f"📝 Committing step: {event['message']}", fg="white")
    elif kind == "step_done":
        click.secho(f"✓ {event['step']} ({event['duration_ms']}ms)", fg="green")
    elif kind == "step_error":
        click.secho(f"✗ {event['step']}", fg="red")


@click.command("new")
@click.argument("name")
@click.option("--redis/--no-redis", default=None, help="Use Redis as the cache store.")
@click.option("--rbac/--no-rbac", default=None, help="Install the RBAC package.")
@click.option("--modules/--no-modules", default=None, help="Install the modular architecture.")
@click.option("--git-email", default=None, help="Git user.email for the new repository.")
@click.option("--git-name", default=None, help="Git user.name for the new repository.")
@click.option("--no-interaction", "-n", is_flag=True, help="Never prompt; unset features are off.")
@click.pass_context
def new(
    ctx: click.Context,
    name: str,
    redis: bool | None,
    rbac: bool | None,
    modules: bool | None,
    git_email: str | None,
    git_name: str | None,
    no_interaction: bool,
) -> None:
    """Create a new Laravel API project called NAME.

    Examples:

        forge new shop-api

        forge new shop-api --redis --rbac --no-modules --no-interaction
    """
    from pydantic import ValidationError

    from apiforge.core.engine.pipeline import StepRuntime, run_pipeline
    from apiforge.core.data.templates import NEXT_STEPS
    from apiforge.core.errors import EnvironmentCheckFailed
    from apiforge.core.models.project import ProjectContext
    from apiforge.core.services.environment import (
        INSTALL_HINTS,
        check_environment,
        ensure_environment,
        find_php_executable,
    )
    from apiforge.core.services.provisioning import build_steps

    settings: ForgeSettings = ctx.obj["settings"]
    interactive = not no_interaction
    base_dir = Path.cwd()
    runner = _make_runner(settings)

    # ── Environment probe ───────────────────────────────────────
    click.secho("🔍 Checking environment requirements...", fg="cyan")
    checks = check_environment(runner, base_dir)
    for check in checks:
        if check.ok:
            click.secho(f"✅ {check.tool}: {check.message}", fg="green")
        else:
            click.secho(f"❌ {check.tool}: {check.message}", fg="red")
    try:
        ensure_environment(checks)
    except EnvironmentCheckFailed as e:
        click.echo()
        click.secho(
            "Environment check failed. Please install the missing tools and try again.",
            fg="red",
            bold=True,
        )
        click.echo()
        click.secho("📚 Installation guides:", fg="yellow")
        for tool in e.failures:
            click.echo(f"   {INSTALL_HINTS[tool]}")
        sys.exit(1)

    # ── Frozen project context ──────────────────────────────────
    try:
        project = ProjectContext.for_directory(
            name,
            base_dir,
            php=find_php_executable(),
            command_timeout=settings.command_timeout,
        )
    except ValidationError as e:
        click.secho(f"❌ {e.errors()[0]['msg']}", fg="red")
        sys.exit(1)

    if project.target_dir.exists():
        click.secho(f"❌ Directory already exists: {project.target_dir}", fg="red")
        sys.exit(1)

    project = project.model_copy(update={
        "use_redis": _ask_feature(redis, "Do you want to use Redis as cache store?", interactive),
        "use_rbac": _ask_feature(rbac, "Do you want to install RBAC package?", interactive),
        "use_modules": _ask_feature(
            modules, "Do you want to install modular architecture?", interactive
        ),
        "git_email": _ask_optional("Enter your git email (optional)", git_email, interactive),
        "git_name": _ask_optional("Enter your git name (optional)", git_name, interactive),
    })

    click.echo()
    click.secho(f"Creating Laravel API project: {project.name}", fg="cyan", bold=True)
    click.echo("Selected features:")
    for label, enabled in project.features.items():
        click.echo(f"{'✅' if enabled else '❌'} {label}")

    # ── Pipeline ────────────────────────────────────────────────
    runtime = StepRuntime(project=project, runner=runner, notify=click.echo)
    run = run_pipeline(build_steps(), runtime, on_event=_render_event)

    click.echo()
    if not run.ok:
        click.secho(f"❌ Error occurred: {run.error}", fg="red", bold=True)
        if run.failed_step:
            click.echo(f"   Failed step: {run.failed_step}")
        if run.checkpoints:
            click.echo(f"   Committed so far: {', '.join(run.checkpoints)}")
        sys.exit(1)

    click.secho(
        f"✅ Laravel API project '{project.name}' has been created successfully!",
        fg="green",
        bold=True,
    )
    click.echo()
    click.echo(NEXT_STEPS.format(name=project.name))
