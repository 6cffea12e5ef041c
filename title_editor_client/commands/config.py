"""Settings commands."""

import sys
from typing import cast

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..settings import CONNECTION_KEYS
from ..settings import PASSWORD_ENV_VAR
from ..settings import Scope
from ..settings import SettingsManager
from ..settings import password_from_env
from ..utils.error_format import escape_markup
from ..utils.error_format import format_error_message

console = Console()

# --global on the command line is the "user" scope in settings
SCOPE_FLAGS = {"local": "local", "project": "project", "global": "user"}


def _settings(ctx: click.Context) -> SettingsManager:
    obj = ctx.find_object(dict) or {}
    return obj.get("settings") or SettingsManager()


@click.group()
def config():
    """Show and change connection settings."""
    pass


@config.command("set")
@click.argument("key", type=click.Choice(CONNECTION_KEYS))
@click.argument("value")
@click.option("--local", "scope_flag", flag_value="local", help="Save locally (just you, this directory)")
@click.option("--project", "scope_flag", flag_value="project", help="Save for the project (team)")
@click.option("--global", "scope_flag", flag_value="global", help="Save globally (all projects)")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str, scope_flag: str | None):
    """Save a connection setting.

    The password is never saved. Set TITLE_EDITOR_PASSWORD, or enter it when
    prompted.

    Examples:
      title-editor config set url https://example.appcatalog.jamfcloud.com --global
      title-editor config set user admin
      title-editor config set verify false --local
    """
    scope = cast(Scope, SCOPE_FLAGS[scope_flag or "local"])
    settings = _settings(ctx)
    try:
        settings.set_connection_value(key, value, scope=scope)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e, include_type=False))}")
        sys.exit(1)

    console.print(f"[green]✓ Set {key}[/green]")
    console.print(f"  Scope: {scope}")
    console.print(f"  File: {settings.scope_file(scope)}")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Show the effective connection settings."""
    settings = _settings(ctx)
    try:
        cnx_settings = settings.get_connection_settings()
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e, include_type=False))}")
        sys.exit(1)

    table = Table(title="Connection Settings")
    table.add_column("Setting", style="green")
    table.add_column("Value", style="cyan")

    for key in CONNECTION_KEYS:
        value = getattr(cnx_settings, key)
        table.add_row(key, escape_markup(value if value is not None else "(not set)"))
    table.add_row("password", f"from {PASSWORD_ENV_VAR}" if password_from_env() else "prompted")

    console.print(table)
