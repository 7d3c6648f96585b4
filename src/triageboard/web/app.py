"""FastAPI dashboard serving the triage views."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from html import escape

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from triageboard.config import Settings
from triageboard.tracker.errors import TrackerError
from triageboard.tracker.fetcher import fetch_all_open_issues
from triageboard.tracker.gitlab_client import GitLabClient
from triageboard.triage.render import render_html, view_url
from triageboard.triage.views import BoardView, build_board

logger = logging.getLogger(__name__)


@dataclass
class DashboardContext:
    """What the routes need: settings and a connected GitLab client."""

    settings: Settings
    source: GitLabClient


def _context(request: Request) -> DashboardContext:
    return request.app.state.context


def _error_page(message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(f"<h2>{escape(message)}</h2>", status_code=status_code)


async def _board_page(context: DashboardContext, view: BoardView) -> HTMLResponse:
    try:
        issues = await fetch_all_open_issues(context.source, context.settings.gitlab.project_id)
    except TrackerError as e:
        logger.error(f"Failed to load issues for view '{view.name}': {e}")
        return _error_page(str(e), 500)

    board = build_board(issues, view)
    return HTMLResponse(render_html(board, views=context.settings.all_views().values()))


def create_app(settings: Settings | None = None, context: DashboardContext | None = None) -> FastAPI:
    """Create the dashboard application.

    Args:
        settings: Settings for production mode (loaded from disk when None).
        context: Optional prebuilt context for testing. If given, no
                 lifespan handler is installed.

    Returns:
        Configured FastAPI application
    """
    if context is not None:
        app = FastAPI(title="Triage Board")
        app.state.context = context
    else:
        if settings is None:
            settings = Settings.load()
        resolved = settings

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncIterator[None]:
            """Open the GitLab client for the lifetime of the server."""
            async with GitLabClient(
                base_url=resolved.gitlab.base_url,
                dry_run=resolved.gitlab.dry_run,
                timeout=resolved.gitlab.timeout,
            ) as client:
                app.state.context = DashboardContext(settings=resolved, source=client)
                yield

        app = FastAPI(title="Triage Board", lifespan=lifespan)

    @app.get("/")
    async def index(request: Request) -> RedirectResponse:
        """Redirect to the default view."""
        try:
            view = _context(request).settings.get_view()
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return RedirectResponse(view_url(view), status_code=303)

    @app.get("/list", response_class=HTMLResponse)
    async def list_view(request: Request) -> HTMLResponse:
        """Issues grouped by urgency, customer communication and planned month."""
        context = _context(request)
        return await _board_page(context, context.settings.get_view("list"))

    @app.get("/msw", response_class=HTMLResponse)
    async def must_should_want_view(request: Request) -> HTMLResponse:
        """Issues grouped by Must/Should/Want."""
        context = _context(request)
        return await _board_page(context, context.settings.get_view("msw"))

    @app.get("/views/{name}", response_class=HTMLResponse)
    async def named_view(request: Request, name: str) -> HTMLResponse:
        """Any configured view."""
        context = _context(request)
        try:
            view = context.settings.get_view(name)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=f"Unknown view: {name}") from e
        return await _board_page(context, view)

    @app.post("/issue/labels/update", response_model=None)
    async def update_issue_labels(request: Request) -> HTMLResponse | RedirectResponse:
        """Add and/or remove a label from the form fields issueID, addLabel, delLabel."""
        context = _context(request)
        form = await request.form()

        issue_id_str = str(form.get("issueID", "")).strip()
        if not issue_id_str:
            return _error_page("Requires IssueID", 400)
        try:
            issue_iid = int(issue_id_str)
        except ValueError:
            return _error_page(f"Invalid IssueID: {issue_id_str}", 400)

        add_label = str(form.get("addLabel", "")) or None
        remove_label = str(form.get("delLabel", "")) or None
        if add_label is None and remove_label is None:
            return _error_page("Requires addLabel or delLabel", 400)

        try:
            await context.source.update_issue_labels(
                context.settings.gitlab.project_id,
                issue_iid,
                add_label=add_label,
                remove_label=remove_label,
            )
        except TrackerError as e:
            logger.error(f"Label update failed for #{issue_iid}: {e}")
            return _error_page(f"Error updating issue's labels: {e}", 502)

        return RedirectResponse("/msw", status_code=303)

    return app


def run(settings: Settings | None = None) -> None:
    """Run the dashboard server."""
    if settings is None:
        settings = Settings.load()
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
