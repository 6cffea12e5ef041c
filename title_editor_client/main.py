"""title-editor: inspect and switch software titles on a Title Editor server."""

import logging
import sys
from collections.abc import Callable
from functools import wraps
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from . import default_connection as defaults
from .commands import config
from .connection import Connection
from .exceptions import TitleEditorError
from .logging_setup import init_json_logging
from .objects import SoftwareTitle
from .settings import SettingsManager
from .settings import password_from_env
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message
from .utils.error_format import hint_for

logger = logging.getLogger(__name__)

console = Console()


def _report_errors(func: Callable) -> Callable:
    """Print Title Editor and validation errors and exit 1 instead of a traceback."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (TitleEditorError, ValidationError) as e:
            logger.error(f"{func.__name__} failed: {format_error_message(e)}")
            console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e))}")
            hint = hint_for(e)
            if hint:
                console.print(f"[dim]{escape_markup(hint)}[/dim]")
            sys.exit(1)

    return wrapper


def _connect(ctx: click.Context) -> Connection:
    """Connect the default connection using options, settings and the password source."""
    obj = ctx.obj
    if obj.get("cnx") is not None:
        return obj["cnx"]

    cnx_settings = obj["settings"].get_connection_settings()
    url = obj.get("url") or cnx_settings.url
    user = obj.get("user") or cnx_settings.user
    if not url or not user:
        raise click.UsageError("No server URL or user. Use --url/--user or 'title-editor config set'.")

    password = password_from_env() or Prompt.ask(f"Password for {user}", password=True)
    defaults.connect(
        url,
        user,
        password,
        timeout=cnx_settings.timeout,
        verify=cnx_settings.verify,
        transport=obj.get("transport"),
    )
    obj["cnx"] = defaults.default_connection()
    ctx.call_on_close(defaults.disconnect)
    return obj["cnx"]


def _fetch_title(ctx: click.Context, ident: str) -> SoftwareTitle:
    cnx = _connect(ctx)
    # Numeric idents are primary ids, anything else the unique id
    return SoftwareTitle.fetch(int(ident) if ident.isdigit() else ident, cnx=cnx)


def _yes_no(value: bool | None) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


@click.group()
@click.version_option(package_name="title-editor-client")
@click.option("--url", help="Title Editor server URL (default from settings)")
@click.option("--user", help="User name (default from settings)")
@click.option("--log-path", type=click.Path(dir_okay=False), help="Write JSONL logs here")
@click.pass_context
def cli(ctx: click.Context, url: str | None, user: str | None, log_path: str | None):
    """Title Editor - manage patch software titles."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", SettingsManager())
    ctx.obj["url"] = url
    ctx.obj["user"] = user
    init_json_logging(log_path)


@cli.command("titles")
@click.pass_context
@_report_errors
def titles_cmd(ctx: click.Context):
    """List all software titles."""
    cnx = _connect(ctx)
    summaries = SoftwareTitle.all(cnx)

    if not summaries:
        console.print("[yellow]No software titles[/yellow]")
        return

    table = Table(title="Software Titles")
    table.add_column("ID", style="green", justify="right")
    table.add_column("Unique ID", style="cyan")
    table.add_column("Name")
    table.add_column("Publisher")
    table.add_column("Version")
    table.add_column("Enabled")

    for summary in summaries:
        table.add_row(
            str(summary.get("softwareTitleId")),
            escape_markup(summary.get("id") or ""),
            escape_markup(summary.get("name") or ""),
            escape_markup(summary.get("publisher") or ""),
            escape_markup(summary.get("currentVersion") or ""),
            _yes_no(summary.get("enabled")),
        )

    console.print(table)


@cli.command("show")
@click.argument("ident")
@click.pass_context
@_report_errors
def show_cmd(ctx: click.Context, ident: str):
    """Show a software title with its requirements and patches.

    IDENT is the numeric id or the unique id, e.g. com.example.app
    """
    title = _fetch_title(ctx, ident)

    console.print(f"\n[bold]{escape_markup(title.name)}[/bold] ({escape_markup(title.unique_id)})")
    console.print(f"  ID: {title.software_title_id}")
    console.print(f"  Publisher: {escape_markup(title.publisher)}")
    console.print(f"  Current version: {escape_markup(title.current_version)}")
    console.print(f"  Enabled: {_yes_no(title.enabled)}")
    if title.last_modified is not None:
        console.print(f"  Last modified: {title.last_modified:%Y-%m-%d %H:%M:%S} UTC")
    if title.extension_attribute is not None:
        console.print(f"  Extension attribute: {escape_markup(title.extension_attribute.key)}")

    reqs = Table(title="Requirements")
    reqs.add_column("#", justify="right")
    reqs.add_column("And/Or")
    reqs.add_column("Name", style="cyan")
    reqs.add_column("Operator")
    reqs.add_column("Value")
    reqs.add_column("Type", style="dim")
    for req in title.requirements:
        reqs.add_row(
            str(req.absolute_order_id),
            req.and_or.value,
            escape_markup(req.name),
            escape_markup(req.operator),
            escape_markup(req.value),
            escape_markup(req.type),
        )
    console.print(reqs)

    patches = Table(title="Patches")
    patches.add_column("#", justify="right")
    patches.add_column("ID", style="green", justify="right")
    patches.add_column("Version", style="cyan")
    patches.add_column("Released")
    patches.add_column("Enabled")
    patches.add_column("Capabilities", justify="right")
    patches.add_column("Kill Apps", justify="right")
    for patch in title.patches:
        released = f"{patch.release_date:%Y-%m-%d}" if patch.release_date else ""
        patches.add_row(
            str(patch.absolute_order_id),
            str(patch.patch_id),
            escape_markup(patch.version),
            released,
            _yes_no(patch.enabled),
            str(len(patch.capabilities)),
            str(len(patch.kill_apps)),
        )
    console.print(patches)


@cli.command("enable")
@click.argument("ident")
@click.pass_context
@_report_errors
def enable_cmd(ctx: click.Context, ident: str):
    """Enable a software title."""
    title = _fetch_title(ctx, ident)
    if title.enable() is None:
        console.print(f"[yellow]{escape_markup(title.unique_id)} is already enabled[/yellow]")
        return
    console.print(f"[green]✓ Enabled {escape_markup(title.unique_id)}[/green]")


@cli.command("disable")
@click.argument("ident")
@click.pass_context
@_report_errors
def disable_cmd(ctx: click.Context, ident: str):
    """Disable a software title."""
    title = _fetch_title(ctx, ident)
    if title.disable() is None:
        console.print(f"[yellow]{escape_markup(title.unique_id)} is already disabled[/yellow]")
        return
    console.print(f"[green]✓ Disabled {escape_markup(title.unique_id)}[/green]")


cli.add_command(config)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
