"""Configuration commands: restore settings and registry credentials."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import config_manager

console = Console()

config_app = typer.Typer(
    help="⚙️  Configuration — restore settings and registry credentials.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    return secret[:2] + "•" * min(max(len(secret) - 2, 0), 12)


@config_app.command("show")
def show_config():
    """Show current restore settings and host rules."""
    restore = config_manager.load_restore_config()
    typer.echo(f"  Docker image  {restore.get('docker_image') or '(local dotnet)'}")
    typer.echo(f"  Timeout       {restore.get('timeout')}s")
    typer.echo(f"  Workers       {restore.get('max_workers')}")
    typer.echo(f"  Config        {config_manager.CONFIG_FILE}")

    rules = config_manager.load_host_rules()
    if not rules:
        typer.echo("\nNo host rules configured.")
        return

    table = Table(title="Host rules", show_lines=False)
    table.add_column("Match host", style="cyan")
    table.add_column("Type")
    table.add_column("Username")
    table.add_column("Password")
    for rule in rules:
        table.add_row(
            str(rule.get("match_host", "")),
            str(rule.get("host_type", "") or "any"),
            str(rule.get("username", "") or "(not set)"),
            _mask(str(rule.get("password", ""))),
        )
    console.print(table)


@config_app.command("set-restore")
def set_restore(
    docker_image: Optional[str] = typer.Option(None, "--docker-image", "-i", help="Docker image with the dotnet SDK ('' for local dotnet)."),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", min=1, help="Restore timeout in seconds."),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", "-w", min=1, help="Threads used to read project and lock files."),
):
    """Change restore settings.

    Example:
      lockgraph config set-restore --docker-image mcr.microsoft.com/dotnet/sdk:8.0
      lockgraph config set-restore --timeout 600
    """
    if docker_image is None and timeout is None and max_workers is None:
        typer.echo("Nothing to change. Pass --docker-image, --timeout or --max-workers.")
        raise typer.Exit(code=1)
    if not config_manager.save_restore_config(docker_image, timeout, max_workers):
        console.print("[red]✗[/red] Failed to save configuration!")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Saved restore settings to {config_manager.CONFIG_FILE}")


@config_app.command("add-host-rule")
def add_host_rule(
    match_host: str = typer.Argument(..., help="Host name (pkgs.example.com) or URL prefix."),
    username: str = typer.Option("", "--username", "-u", help="Registry user name."),
    password: str = typer.Option("", "--password", "-p", help="Registry password or token."),
    host_type: str = typer.Option("nuget", "--host-type", help="Only use for this host type ('' for any)."),
):
    """Store credentials used when adding a registry source."""
    if not config_manager.save_host_rule(match_host, username, password, host_type):
        console.print("[red]✗[/red] Failed to save configuration!")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Saved host rule for {match_host}")


@config_app.command("reset")
def reset_config():
    """Reset restore settings to defaults (host rules are kept)."""
    if not config_manager.CONFIG_FILE.exists():
        typer.echo("No configuration found. Nothing to reset.")
        raise typer.Exit(code=0)
    if not config_manager.clear_restore_config():
        console.print("[red]✗[/red] Failed to reset configuration!")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Restore settings reset to defaults.")
