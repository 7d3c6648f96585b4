"""Renderers for a triage board: HTML page, Markdown report, terminal table."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from html import escape

from rich.console import Console
from rich.markup import escape as escape_markup
from rich.table import Table
from rich.text import Text

from triageboard.tracker.models import Issue
from triageboard.triage.views import BUILTIN_VIEWS, Board, BoardView

PAGE_STYLE = """
*, html, body {
    font-family: "Times", "Times New Roman", "NimbusRoman", serif;
    color: #1d1d1d;
    font-size: 20px;
    line-height: 30px;
}
h1, h2 { font-size: 31.25px; line-height: 48px; margin: 1em 0 0.5em; }
a { text-decoration: none; }
article { margin-right: auto; margin-left: 200px; margin-bottom: 4rem; padding: 0 1rem; }
.weight-b { font-weight: bold; }
.weight-n { font-weight: normal; }
.style-i { font-style: italic; }
.text-right { text-align: right; }
.text-color-slate { color: #757575; }
.pl-1 { padding-left: 0.25rem; }
.px-4 { padding-left: 1rem; padding-right: 1rem; }
.ta-end { text-align: end; }
td.truncate {
    display: block;
    width: 700px;
    overflow: hidden;
    text-overflow: ellipsis;
    white-space: nowrap;
}
.bug { color: #c20000 !important; }
.underline { border-bottom: 1px solid #8a8a8a; }
.main-nav {
    position: fixed;
    top: 0;
    left: 0;
    width: 200px;
    height: 100%;
    background-color: rgb(37,38,41);
    color: rgb(255,255,255);
}
.main-nav > h2 { color: rgb(215,215,215); }
.main-nav > ul { margin: 0.5rem; padding: 0 0 0 0.25rem; }
.main-nav > ul > li { list-style: none; }
.main-nav > ul > li > a { color: rgba(191,191,191,0.9); }
.main-nav > ul > li > a:hover { color: rgba(191,191,191,1); }
"""


def view_url(view: BoardView) -> str:
    """URL path of a view on the dashboard server."""
    if view.name in BUILTIN_VIEWS:
        return f"/{view.name}"
    return f"/views/{view.name}"


def _render_nav(views: Iterable[BoardView]) -> str:
    items = "".join(f'<li><a href="{escape(view_url(view))}">{escape(view.title or view.name)}</a></li>' for view in views)
    return f'<nav class="main-nav"><h2>View</h2><ul>{items}</ul></nav>'


def _render_issue_row(issue: Issue, now: datetime, show_planned_month: bool) -> str:
    cells = []

    initials = issue.assignee_initials
    cells.append(f'<td><span class="weight-b">{escape(initials)}</span></td>' if initials else "<td></td>")

    # Red and bold ID for bugs
    id_classes = "bug weight-b" if issue.is_bug else ""
    cells.append(f'<td class="px-4 ta-end"><span class="{id_classes}">{issue.iid}</span></td>')
    cells.append(f'<td class="truncate"><a href="{escape(issue.web_url)}">{escape(issue.title)}</a></td>')
    cells.append(f'<td class="style-i text-color-slate text-right">{issue.age_days(now)}</td>')

    due = issue.due_date.isoformat() if issue.due_date else ""
    cells.append(f'<td><span class="weight-b px-4">{due}</span></td>')

    if show_planned_month:
        for month in issue.planned_months:
            cells.append(f'<td class="text-color-slate">{escape(month)}</td>')

    return "<tr>" + "".join(cells) + "</tr>"


def render_html(board: Board, now: datetime | None = None, views: Iterable[BoardView] | None = None) -> str:
    """Render a board as a complete HTML page.

    Args:
        board: Board to render.
        now: Reference time for issue ages (defaults to current UTC time).
        views: Views linked from the navigation (defaults to the built-ins).

    Returns:
        The HTML document.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if views is None:
        views = BUILTIN_VIEWS.values()

    num_cols = 6 if board.view.show_planned_month else 5
    rows: list[str] = []
    for section in board.sections:
        rows.append(
            f'<tr><td colspan="{num_cols}"><h2 class="underline">{escape(section.label)} '
            f'<span class="weight-n style-i pl-1">{len(section)}</span></h2></td></tr>'
        )
        if not section.issues:
            rows.append(f'<tr><td colspan="{num_cols}"></td></tr>')
        for issue in section.issues:
            rows.append(_render_issue_row(issue, now, board.view.show_planned_month))

    title = escape(board.view.title or board.view.name)
    return (
        "<!DOCTYPE html>\n"
        f"<html>\n<head>\n<title>{title}</title>\n<style>{PAGE_STYLE}</style>\n</head>\n<body>\n"
        f"{_render_nav(views)}\n"
        "<article>\n<table>\n" + "\n".join(rows) + "\n</table>\n</article>\n</body>\n</html>\n"
    )


def render_markdown(board: Board) -> str:
    """Render a board as Markdown with reference-style links at the bottom."""
    lines: list[str] = []
    links: list[str] = []

    for section in board.sections:
        lines.append(f"## {section.label}")
        for issue in section.issues:
            parts = [f"- [{issue.iid}][{issue.iid}]"]
            if issue.is_bug:
                parts.append("**BUG**")
            parts.append(issue.title)
            if issue.assignee_initials:
                parts.append(f"— **{issue.assignee_initials}**")
            lines.append(" ".join(parts))
            links.append(f"[{issue.iid}]: {issue.web_url}")
        lines.append("")

    lines.append("")
    lines.append("# Links")
    lines.append("")
    lines.extend(links)
    return "\n".join(lines) + "\n"


def render_table(board: Board, console: Console, now: datetime | None = None) -> None:
    """Print a board to the terminal, one table per section."""
    if now is None:
        now = datetime.now(timezone.utc)

    for section in board.sections:
        console.print(f"\n[bold underline]{escape_markup(section.label)}[/bold underline] [dim italic]{len(section)}[/dim italic]")
        if not section.issues:
            continue

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Who", width=5)
        table.add_column("ID", justify="right")
        table.add_column("Title", max_width=60, no_wrap=True, overflow="ellipsis")
        table.add_column("Age", justify="right", style="dim italic")
        table.add_column("Due")
        if board.view.show_planned_month:
            table.add_column("Planned", style="dim")

        for issue in section.issues:
            iid = f"[bold red]{issue.iid}[/bold red]" if issue.is_bug else str(issue.iid)
            row = [
                Text(issue.assignee_initials),
                iid,
                Text(issue.title),
                str(issue.age_days(now)),
                issue.due_date.isoformat() if issue.due_date else "",
            ]
            if board.view.show_planned_month:
                row.append(Text(", ".join(issue.planned_months)))
            table.add_row(*row)

        console.print(table)
