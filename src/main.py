"""
Pi-Apps status helper — CLI entrypoint.

Usage:
    piapps-status --help
    piapps-status --dir ~/pi-apps refresh
    piapps-status refresh Firefox --json
    piapps-status list hidden
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from src import __version__
from src.core.observability.logging_config import level_from_flags, setup_from_env


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def _load_context(ctx: click.Context):
    """AppsContext from --dir / --config / PI_APPS_DIR."""
    from src.core.config.loader import ConfigError, load_config
    from src.core.context import AppsContext

    try:
        config = load_config(
            config_path=ctx.obj.get("config_path"),
            directory=ctx.obj.get("directory"),
        )
    except ConfigError as e:
        _fail(str(e))
    return AppsContext.from_config(config)


def _resolve_backend(apps_ctx):
    from src.adapters.registry import default_registry
    from src.core.config.loader import ConfigError

    try:
        return default_registry(apps_ctx.config).resolve(apps_ctx.config.backend)
    except ConfigError as e:
        _fail(str(e))


@click.group()
@click.version_option(version=__version__, prog_name="piapps-status")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Pi-Apps directory (default: $PI_APPS_DIR).",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to a piapps.yml config file.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    directory: str | None,
    config_path: str | None,
) -> None:
    """Pi-Apps status helper — keep package-app status in sync with the system."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["directory"] = Path(directory) if directory else None
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_from_env(level_from_flags(debug=debug, verbose=verbose, quiet=quiet))


# ── Refresh ─────────────────────────────────────────────────────


@cli.command()
@click.argument("app", required=False)
@click.option("--package", "-p", default=None, help="Check only this package (single app).")
@click.option("--no-analytics", is_flag=True, help="Do not send install/uninstall analytics.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def refresh(
    ctx: click.Context,
    app: str | None,
    package: str | None,
    no_analytics: bool,
    as_json: bool,
) -> None:
    """Reconcile package-app status with installed packages.

    Without APP every package-app is refreshed in one batch.
    """
    from src.adapters.base import PackageQueryError
    from src.core.services.analytics import AnalyticsNotifier, NullNotifier
    from src.core.services.app_listing import PackagesFileError
    from src.core.services.category_ops import CategoryEditError, make_category_editor
    from src.core.services.reconcile import StatusReconciler

    if package and not app:
        _fail("--package requires an APP")

    apps_ctx = _load_context(ctx)
    reconciler = StatusReconciler(
        apps_ctx,
        _resolve_backend(apps_ctx),
        make_category_editor(apps_ctx),
        NullNotifier() if no_analytics else AnalyticsNotifier(apps_ctx),
    )

    try:
        if app:
            result = reconciler.refresh_app(app, package=package)
        else:
            result = reconciler.refresh_all()
    except (PackageQueryError, PackagesFileError, CategoryEditError, OSError, ValueError) as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    quiet = ctx.obj.get("quiet", False)
    outcomes = [result] if app else result.outcomes
    for outcome in outcomes:
        if not outcome.ok:
            click.secho(f"   ⚠️  {outcome.app}: {outcome.error}", fg="yellow")
        elif outcome.changed:
            detail = f" (unhidden → {outcome.unhidden_to})" if outcome.unhidden_to else ""
            click.secho(f"   ✓ {outcome.app}: {outcome.previous} → {outcome.target}{detail}", fg="green")
        elif app and not quiet:
            click.echo(f"   {outcome.app}: {outcome.target} (unchanged)")

    if not app and not quiet:
        click.echo()
        click.secho(
            f"🔄 {len(result.outcomes)} apps, {len(result.changed)} changed, "
            f"{len(result.failed)} failed",
            bold=True,
        )


# ── Queries ─────────────────────────────────────────────────────


@cli.command()
@click.argument("app")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, app: str, as_json: bool) -> None:
    """Show the recorded status and category of APP."""
    from src.core.persistence.categories import CategoryData, is_hidden_override
    from src.core.persistence.status_store import get_app_status
    from src.core.services.app_listing import app_type

    apps_ctx = _load_context(ctx)
    if not apps_ctx.app_dir(app).is_dir():
        _fail(f"the '{app}' app does not exist")

    try:
        kind = app_type(apps_ctx, app)
    except ValueError:
        kind = None
    data = {
        "app": app,
        "status": get_app_status(apps_ctx, app),
        "type": kind,
        "category": CategoryData.load(apps_ctx).category_of(app),
        "hidden": is_hidden_override(apps_ctx, app),
    }

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"📦 {app}", fg="cyan", bold=True)
    click.echo(f"   Status:   {data['status']}")
    click.echo(f"   Type:     {kind or 'unknown'}")
    click.echo(f"   Category: {data['category'] or '(none)'}")
    if data["hidden"]:
        click.secho("   Hidden:   yes", fg="yellow")


@cli.command("list")
@click.argument("filter_name", metavar="[FILTER]", required=False, default="local")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, filter_name: str, as_json: bool) -> None:
    """List apps (local, package, standard, installed, hidden, ...)."""
    from src.core.services.app_listing import list_apps

    apps_ctx = _load_context(ctx)
    try:
        apps = list_apps(apps_ctx, filter_name)
    except ValueError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(apps, indent=2))
        return
    for name in apps:
        click.echo(name)


@cli.command()
@click.argument("app")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def required(ctx: click.Context, app: str, as_json: bool) -> None:
    """Packages that would be installed for package-app APP."""
    from src.adapters.base import PackageQueryError
    from src.core.models.app import flatten
    from src.core.services.app_listing import PackagesFileError, read_package_requirements
    from src.core.services.reconcile import resolve_required_packages

    apps_ctx = _load_context(ctx)
    backend = _resolve_backend(apps_ctx)
    try:
        requirements = read_package_requirements(apps_ctx, app)
        facts = backend.query(flatten(requirements))
    except (PackagesFileError, PackageQueryError) as e:
        _fail(str(e))

    packages = resolve_required_packages(requirements, facts)
    if as_json:
        click.echo(json.dumps({"app": app, "packages": packages}, indent=2))
        if not packages:
            sys.exit(1)
        return
    if not packages:
        _fail(f"no installable packages for '{app}'")
    click.echo(" ".join(packages))


@cli.command()
@click.argument("app")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def icons(ctx: click.Context, app: str, source: str) -> None:
    """Generate icon-24.png and icon-64.png for APP from SOURCE."""
    from src.core.services.app_icons import generate_app_icons

    apps_ctx = _load_context(ctx)
    try:
        written = generate_app_icons(apps_ctx, app, Path(source))
    except (ValueError, OSError) as e:
        _fail(str(e))

    if not ctx.obj.get("quiet", False):
        for path in written:
            click.secho(f"   ✓ {path.name}", fg="green")


# ── Register sub-command groups from src/ui/cli/ ──────────────────

from src.ui.cli.category import category
from src.ui.cli.system import system

cli.add_command(category)
cli.add_command(system)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
