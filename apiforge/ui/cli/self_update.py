"""
CLI command for updating the forge binary in place.

Thin wrapper over ``apiforge.core.services.self_update``; each mode
turns the updater's errors into its own message and hints.
"""

from __future__ import annotations

import sys

import click

from apiforge.core.config.loader import ForgeSettings
from apiforge.core.models.release import Stability


def _make_updater(settings: ForgeSettings, stability: Stability):
    from apiforge import __version__
    from apiforge.core.services.release_feed import ReleaseFeed
    from apiforge.core.services.self_update import SelfUpdater, running_binary

    feed = ReleaseFeed(
        settings.release_repo,
        api_url=settings.github_api_url,
        token=settings.github_token,
        timeout=settings.http_timeout,
    )
    return SelfUpdater(feed, running_binary(), __version__, stability)


def _releases_url(settings: ForgeSettings, tag: str = "") -> str:
    base = f"https://github.com/{settings.release_repo}/releases"
    return f"{base}/tag/{tag}" if tag else base


def _fail(message: str, *hints: str) -> None:
    click.secho(f"❌ {message}", fg="red")
    if hints:
        click.echo()
        click.secho("💡 Try:", fg="yellow")
        for hint in hints:
            click.echo(f"   • {hint}")
    sys.exit(1)


@click.command("self-update")
@click.option("--check", "check_only", is_flag=True, help="Only report whether an update exists.")
@click.option("--rollback", is_flag=True, help="Restore the previous binary.")
@click.option("--force", is_flag=True, help="Re-download even when up to date.")
@click.option("--pre-release", is_flag=True, help="Consider pre-releases.")
@click.pass_context
def self_update(
    ctx: click.Context,
    check_only: bool,
    rollback: bool,
    force: bool,
    pre_release: bool,
) -> None:
    """Update forge to the latest release.

    Examples:

        forge self-update --check

        forge self-update --pre-release

        forge self-update --rollback
    """
    from apiforge.core.errors import (
        NoBackupFound,
        NotPackagedBinary,
        UpdateCheckFailed,
        UpdateFailed,
    )
    from apiforge.core.services.self_update import UpdateState

    settings: ForgeSettings = ctx.obj["settings"]
    updater = _make_updater(settings, "any" if pre_release else "stable")
    if not updater.packaged:
        _fail(str(NotPackagedBinary()))

    # ── Rollback ────────────────────────────────────────────────
    if rollback:
        click.secho("🔙 Rolling back to the previous version...", fg="cyan")
        try:
            updater.rollback()
        except NoBackupFound:
            _fail(
                "Rollback failed. No backup version found.",
                "Backup versions are created automatically when you update.",
            )
        except UpdateFailed as e:
            _fail(f"Rollback failed: {e}")
        click.secho("✅ Successfully rolled back to the previous version!", fg="green")
        click.echo()
        click.echo("💡 You can update again using the self-update command.")
        return

    # ── Check only ──────────────────────────────────────────────
    if check_only:
        click.secho("🔍 Checking for available updates...", fg="cyan")
        try:
            outcome = updater.check()
        except UpdateCheckFailed as e:
            _fail(f"Failed to check for updates: {e}")

        record = outcome.record
        if outcome.state == UpdateState.UPDATE_AVAILABLE:
            click.echo()
            click.secho("🎉 A new version is available!", fg="green", bold=True)
            click.echo(f"   Current version: {record.local_version}")
            click.echo(f"   Latest version:  {record.remote_version}")
            click.echo()
            click.echo("🚀 Run 'forge self-update' to update to the latest version.")
            click.echo(f"📝 Release notes: {_releases_url(settings, outcome.release.tag_name)}")
        else:
            click.secho(
                f"✅ You have the latest version installed: {record.local_version}",
                fg="green",
            )
        return

    # ── Update ──────────────────────────────────────────────────
    click.secho("🔍 Checking for updates...", fg="cyan")
    if force:
        click.secho("🔧 Force update requested...", fg="yellow")
    try:
        outcome = updater.update(force=force)
    except (UpdateCheckFailed, UpdateFailed) as e:
        _fail(
            f"Update failed: {e}",
            "Check your internet connection",
            f"Visit GitHub releases manually: {_releases_url(settings)}",
        )

    record = outcome.record
    if outcome.state != UpdateState.UPDATED:
        click.secho("✨ You already have the latest version installed!", fg="green")
        return

    if record.remote_version == record.local_version:
        click.secho(f"✅ Force update completed! ({record.remote_version})", fg="green")
    else:
        click.secho(
            f"✅ Successfully updated from {record.local_version} to {record.remote_version}!",
            fg="green",
            bold=True,
        )
    if not outcome.checksum_verified:
        click.secho(
            "⚠️  No checksum published for this release; download not verified.",
            fg="yellow",
        )
    click.echo()
    click.echo("🔥 What's new in this version:")
    click.echo(f"   Visit: {_releases_url(settings, outcome.release.tag_name)}")
    click.echo()
    click.echo("💡 Tip: You can roll back using 'forge self-update --rollback' if needed.")
