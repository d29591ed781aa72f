"""Command-line entry points for rails-runner."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from rails_runner.config import Settings, get_settings
from rails_runner.console.client import RailsConsoleClient
from rails_runner.errors import ConfigurationError
from rails_runner.logging_utils import configure_logging
from rails_runner.snippets import CodeSnippetCatalog
from rails_runner.tools.builtin import run_console_command

app = typer.Typer(
    name="rails-runner",
    help="Run Rails console snippets for agents, with a read-only guard.",
    add_completion=False,
)
console = Console()


def _load_settings(working_dir: Path | None) -> Settings:
    if working_dir is not None:
        return get_settings(working_dir=working_dir)
    return get_settings()


def _exit_with_error(message: str) -> None:
    Console(stderr=True).print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def serve(
    working_dir: Path | None = typer.Option(None, "--working-dir", "-w", help="Rails application root"),  # noqa: B008
) -> None:
    """Serve the console tools over MCP stdio."""
    from rails_runner.server import serve as serve_stdio

    settings = _load_settings(working_dir)
    try:
        asyncio.run(serve_stdio(settings))
    except ConfigurationError as exc:
        _exit_with_error(str(exc))


@app.command("exec")
def exec_command(
    code: str = typer.Argument(..., help="Ruby code to evaluate"),
    mutate: bool = typer.Option(False, "--mutate", help="Skip the read-only guard"),
    working_dir: Path | None = typer.Option(None, "--working-dir", "-w", help="Rails application root"),  # noqa: B008
) -> None:
    """Run one snippet and print the payload."""
    settings = _load_settings(working_dir)
    configure_logging(profile="cli", level=settings.log_level)
    client = RailsConsoleClient.from_settings(settings)
    try:
        client.connect(settings.require_working_dir())
    except ConfigurationError as exc:
        _exit_with_error(str(exc))

    try:
        response = asyncio.run(run_console_command(client, code, "mutate" if mutate else "read_only"))
    finally:
        client.disconnect()
    typer.echo(response.text)
    if response.is_error:
        raise typer.Exit(1)


@app.command()
def snippets(
    snippets_file: Path | None = typer.Option(None, "--file", "-f", help="Extra snippets YAML file"),  # noqa: B008
) -> None:
    """List available code snippets."""
    settings = get_settings()
    try:
        catalog = CodeSnippetCatalog.load(snippets_file or settings.snippets_file)
    except ConfigurationError as exc:
        _exit_with_error(str(exc))
        return

    table = Table(title="Code snippets")
    table.add_column("Id", style="cyan")
    table.add_column("Description")
    for snippet in catalog:
        table.add_row(snippet.id, snippet.description)
    console.print(table)
