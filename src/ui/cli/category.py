"""
CLI commands for app categories.

Thin wrappers over ``src.core.services.category_ops``.
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
def category() -> None:
    """Categories — get, set, hidden apps."""


@category.command("get")
@click.argument("app")
@click.pass_context
def get_category(ctx: click.Context, app: str) -> None:
    """Print the effective category of APP."""
    from src.core.services.category_ops import make_category_editor

    apps_ctx = _load_context(ctx)
    click.echo(make_category_editor(apps_ctx).get(app))


@category.command("set")
@click.argument("app")
@click.argument("name")
@click.pass_context
def set_category(ctx: click.Context, app: str, name: str) -> None:
    """Move APP to category NAME ("hidden" hides it)."""
    from src.core.services.category_ops import CategoryEditError, make_category_editor

    apps_ctx = _load_context(ctx)
    try:
        make_category_editor(apps_ctx).set(app, name)
    except CategoryEditError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if not ctx.obj.get("quiet", False):
        click.secho(f"✅ {app} → {name}", fg="green")


@category.command("hidden")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def hidden(ctx: click.Context, as_json: bool) -> None:
    """List hidden apps."""
    from src.core.services.category_ops import hidden_apps

    apps = hidden_apps(_load_context(ctx))
    if as_json:
        click.echo(json.dumps(apps, indent=2))
        return
    for name in apps:
        click.echo(name)
