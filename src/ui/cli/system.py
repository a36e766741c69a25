"""
CLI commands for system checks.

Thin wrappers over ``src.core.services.system_support``.
"""

from __future__ import annotations

import json
import sys

import click


def _load_context(ctx: click.Context):
    from src.core.config.loader import ConfigError, load_config
    from src.core.context import AppsContext

    try:
        config = load_config(
            config_path=ctx.obj.get("config_path"),
            directory=ctx.obj.get("directory"),
        )
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    return AppsContext.from_config(config)


@click.group()
def system() -> None:
    """System — support checks and package backends."""


@system.command()
@click.option("--offline", is_flag=True, help="Skip the end-of-life lookup.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, offline: bool, as_json: bool) -> None:
    """Check whether this system is supported."""
    from src.adapters.base import PackageQueryError
    from src.adapters.registry import default_registry
    from src.core.config.loader import ConfigError
    from src.core.services.system_support import check_system_support, no_eol_data

    apps_ctx = _load_context(ctx)
    try:
        backend = default_registry(apps_ctx.config).resolve(apps_ctx.config.backend)
        result = check_system_support(
            apps_ctx, backend, fetch_eol=no_eol_data if offline else None,
        )
    except (ConfigError, PackageQueryError, OSError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.os_info and result.os_info.pretty_name:
        click.secho(f"🖥️  {result.os_info.pretty_name} ({result.os_info.architecture})", fg="cyan")
    for warning in result.warnings:
        click.secho(f"   ⚠️  {warning}", fg="yellow")

    if result.supported:
        click.secho("✅ Supported", fg="green", bold=True)
        if result.message:
            click.echo(f"   {result.message}")
        return

    click.secho(f"❌ {result.message}", fg="red")
    sys.exit(1)


@system.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backends(ctx: click.Context, as_json: bool) -> None:
    """Show registered package backends and whether they work here."""
    from src.adapters.registry import default_registry

    apps_ctx = _load_context(ctx)
    status = default_registry(apps_ctx.config).backend_status()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    for name, info in status.items():
        icon = "✅" if info.get("available") else "❌"
        click.echo(f"   {icon} {name}")
