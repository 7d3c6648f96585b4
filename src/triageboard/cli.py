"""CLI interface for the triage board."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape as escape_markup
from rich.table import Table
from rich.text import Text

from triageboard.config import Settings
from triageboard.tracker.errors import TrackerError
from triageboard.tracker.fetcher import fetch_all_open_issues, fetch_all_users
from triageboard.tracker.gitlab_client import GitLabClient
from triageboard.tracker.models import GitLabUser, Issue
from triageboard.triage.render import render_html, render_markdown, render_table
from triageboard.triage.views import build_board

__version__ = "0.1.0"

app = typer.Typer(
    name="triageboard",
    help="Triage open GitLab issues into label-ordered buckets.",
    no_args_is_help=True,
)
console = Console()


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _client(settings: Settings) -> GitLabClient:
    return GitLabClient(
        base_url=settings.gitlab.base_url,
        dry_run=settings.gitlab.dry_run,
        timeout=settings.gitlab.timeout,
    )


def _require_project(settings: Settings) -> int:
    if not settings.gitlab.project_id:
        console.print("[red]No project configured. Set GITLAB_PROJ_ID or gitlab.project_id in the config file.[/red]")
        raise typer.Exit(1)
    return settings.gitlab.project_id


def _fail(message: str, error: Exception) -> typer.Exit:
    console.print(f"[bold red]{message}:[/bold red] {escape_markup(str(error))}")
    return typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file (default: .triageboard/config.yaml)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load settings and configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = Settings.load(config)
    except ValueError as e:
        raise _fail("Invalid configuration", e) from e
    ctx.obj = {"settings": settings}


@app.command()
def report(
    ctx: typer.Context,
    view: Annotated[
        str | None,
        typer.Option("--view", help="View name (list, msw, or a configured view)"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: table, markdown, html"),
    ] = "table",
) -> None:
    """Show open issues grouped into the buckets of a view."""
    settings = _settings(ctx)
    if output_format not in ("table", "markdown", "html"):
        console.print(f"[red]Unknown format '{output_format}'. Use table, markdown or html.[/red]")
        raise typer.Exit(1)
    try:
        board_view = settings.get_view(view)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1) from e
    project_id = _require_project(settings)

    async def load() -> list[Issue]:
        async with _client(settings) as client:
            return await fetch_all_open_issues(client, project_id)

    try:
        issues = asyncio.run(load())
    except TrackerError as e:
        raise _fail("Could not fetch issues", e) from e

    board = build_board(issues, board_view)
    if output_format == "markdown":
        typer.echo(render_markdown(board), nl=False)
    elif output_format == "html":
        typer.echo(render_html(board, views=settings.all_views().values()), nl=False)
    else:
        console.print(f"[bold]{board_view.title or board_view.name}[/bold]: {board.issue_count} issue(s)")
        render_table(board, console)


@app.command()
def issues(ctx: typer.Context) -> None:
    """List every open issue with its labels."""
    settings = _settings(ctx)
    project_id = _require_project(settings)

    async def load() -> list[Issue]:
        async with _client(settings) as client:
            return await fetch_all_open_issues(client, project_id)

    try:
        found = asyncio.run(load())
    except TrackerError as e:
        raise _fail("Could not fetch issues", e) from e

    console.print(f"[bold]Issues ({len(found)}):[/bold]")
    for issue in found:
        console.print(Text(f"    - {issue.iid} {issue.title}"))
        console.print(Text(f"        - {list(issue.labels)}"), style="dim")


@app.command()
def users(ctx: typer.Context) -> None:
    """List users visible to the API token."""
    settings = _settings(ctx)

    async def load() -> list[GitLabUser]:
        async with _client(settings) as client:
            return await fetch_all_users(client)

    try:
        found = asyncio.run(load())
    except TrackerError as e:
        raise _fail("Could not fetch users", e) from e

    table = Table(title=f"Users ({len(found)})", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Username")
    table.add_column("Name")
    table.add_column("State", style="dim")
    for user in found:
        table.add_row(str(user.id), Text(user.username), Text(user.name), user.state)
    console.print(table)


@app.command()
def label(
    ctx: typer.Context,
    issue_iid: Annotated[int, typer.Argument(help="Project-scoped issue ID")],
    add: Annotated[str | None, typer.Option("--add", "-a", help="Label to add")] = None,
    remove: Annotated[str | None, typer.Option("--remove", "-r", help="Label to remove")] = None,
) -> None:
    """Add and/or remove a label on an issue."""
    settings = _settings(ctx)
    if not add and not remove:
        console.print("[red]Pass --add and/or --remove[/red]")
        raise typer.Exit(1)
    project_id = _require_project(settings)

    async def update() -> Issue | None:
        async with _client(settings) as client:
            return await client.update_issue_labels(project_id, issue_iid, add_label=add, remove_label=remove)

    try:
        updated = asyncio.run(update())
    except TrackerError as e:
        raise _fail(f"Could not update issue #{issue_iid}", e) from e

    if updated is None:
        console.print(f"[yellow]Dry run: no change made to #{issue_iid}[/yellow]")
        return
    console.print(f"[green]Updated #{updated.iid}:[/green] {escape_markup(', '.join(updated.labels) or '(no labels)')}")


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Port to listen on")] = None,
) -> None:
    """Run the web dashboard."""
    from triageboard.web.app import run

    settings = _settings(ctx)
    _require_project(settings)
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port
    run(settings)


@app.command()
def version() -> None:
    """Show the version."""
    console.print(f"triageboard {__version__}")
