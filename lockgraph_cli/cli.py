"""Typer-based CLI for LockGraph lock file regeneration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .artifacts import UpdateContext, update_artifacts
from .cli_config import config_app
from .errors import LockGraphError, RestoreCancelled, TransientInfrastructureError
from .fs import LocalFileSystem
from .graph import GraphBuilder
from .impact import ImpactResolver
from .models import UpdateArtifact, UpdateConfig
from .parser import canonical_path, is_supported_manifest

console = Console()

app = typer.Typer(
    help="🔒 LockGraph CLI — regenerate NuGet lock files for every project a change touches.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"LockGraph CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress at INFO level."),
    debug: bool = typer.Option(False, "--debug", help="Log everything at DEBUG level."),
):
    """LockGraph CLI: find the projects a manifest change impacts and refresh their lock files."""
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _root_and_manifest(manifest: Path, root: Path) -> Tuple[Path, str]:
    root_dir = root.resolve()
    return root_dir, canonical_path(manifest.resolve().as_posix())


@app.command("graph")
def graph(
    root: Path = typer.Argument(..., exists=True, file_okay=False, help="Root of the source tree."),
):
    """List every project file under ROOT with the projects it references."""
    root_dir = root.resolve()
    builder = GraphBuilder(LocalFileSystem(root_dir))
    try:
        dep_graph = builder.build(root_dir.as_posix())
    except LockGraphError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(1)

    if not len(dep_graph):
        typer.echo("No project files found.")
        raise typer.Exit(code=0)

    resolver = ImpactResolver(dep_graph, root_dir.as_posix())
    table = Table(title=f"Project graph ({len(dep_graph)} projects)", show_lines=False)
    table.add_column("Project", style="cyan")
    table.add_column("References")
    for node in dep_graph:
        refs = [resolver.label(r) for r in dep_graph.references(node)]
        table.add_row(resolver.label(node), "\n".join(refs) or "[dim]none[/dim]")
    console.print(table)


@app.command("impact")
def impact(
    manifest: Path = typer.Argument(..., exists=True, dir_okay=False, help="Changed project file."),
    root: Path = typer.Option(..., "--root", "-r", exists=True, file_okay=False, help="Root of the source tree (repository working directory)."),
    show_graph: bool = typer.Option(True, "--show-graph/--no-graph", help="Include ASCII graph output."),
):
    """Show every project that transitively references MANIFEST."""
    if not is_supported_manifest(manifest.name):
        typer.echo(f"❌ Not a supported project file: {manifest}", err=True)
        raise typer.Exit(code=1)

    root_dir, changed = _root_and_manifest(manifest, root)
    builder = GraphBuilder(LocalFileSystem(root_dir))
    try:
        dep_graph = builder.build(root_dir.as_posix())
    except LockGraphError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1)

    report = ImpactResolver(dep_graph, root_dir.as_posix()).report(changed)
    typer.echo(f"Root: {report.root}")
    if report.impacted:
        typer.echo("Impacted projects:")
        for impacted in report.impacted:
            typer.echo(f"- {impacted}")
    else:
        typer.echo("Impacted projects: none found")

    if show_graph:
        typer.echo("\nASCII graph:")
        typer.echo(report.ascii_graph)


@app.command("update")
def update(
    manifest: Path = typer.Argument(..., exists=True, dir_okay=False, help="Changed project file."),
    root: Path = typer.Option(..., "--root", "-r", exists=True, file_okay=False, help="Root of the source tree (repository working directory)."),
    deps: Optional[List[str]] = typer.Option(None, "--dep", "-d", help="Name of a dependency that changed (repeatable)."),
    maintenance: bool = typer.Option(False, "--maintenance", "-m", help="Regenerate lock files even if no dependency changed."),
    content_file: Optional[Path] = typer.Option(
        None, "--content-file", "-c", exists=True, dir_okay=False,
        help="New manifest content to write before restoring (default: current content).",
    ),
    docker_image: Optional[str] = typer.Option(None, "--docker-image", help="Run dotnet inside this docker image."),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=1, help="Restore timeout in seconds."),
):
    """Restore MANIFEST and its dependents, then report lock files that changed."""
    root_dir, changed = _root_and_manifest(manifest, root)
    source = content_file or manifest
    new_content = source.read_text(encoding="utf-8")

    ctx = UpdateContext.from_config(root_dir, docker_image=docker_image, timeout=timeout)
    request = UpdateArtifact(
        package_file_name=changed,
        new_package_file_content=new_content,
        config=UpdateConfig(is_lock_file_maintenance=maintenance),
        updated_deps=deps or [],
    )

    try:
        results = update_artifacts(request, ctx)
    except TransientInfrastructureError as exc:
        console.print(f"[yellow]⚠[/yellow] Temporary failure, retry later: {exc.detail or exc}")
        raise typer.Exit(75)
    except RestoreCancelled as exc:
        console.print(f"[yellow]⚠[/yellow] {exc}")
        raise typer.Exit(130)
    except LockGraphError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(1)

    if results is None:
        typer.echo("No lock files changed.")
        return

    errors = [r.artifact_error for r in results if r.artifact_error]
    if errors:
        for error in errors:
            console.print("[red]✗[/red] Failed to generate lock files:")
            for lock_file in error.lock_files:
                console.print(f"  - {lock_file}")
            console.print(error.stderr, markup=False)
        raise typer.Exit(1)

    typer.echo(f"Updated {len(results)} lock file(s):")
    for result in results:
        state = "deleted" if result.file.contents is None else "updated"
        typer.echo(f"- {result.file.name} ({state})")


if __name__ == "__main__":
    app()
