"""Label bucketing and rendering of the triage board."""

from __future__ import annotations

from triageboard.triage.buckets import UNSORTED, BucketMap, group_by_label
from triageboard.triage.render import render_html, render_markdown, render_table
from triageboard.triage.views import (
    BUILTIN_VIEWS,
    LIST_VIEW,
    MUST_SHOULD_WANT_VIEW,
    STOP_MARKER,
    Board,
    BoardSection,
    BoardView,
    build_board,
)

__all__ = [
    "BUILTIN_VIEWS",
    "LIST_VIEW",
    "MUST_SHOULD_WANT_VIEW",
    "STOP_MARKER",
    "UNSORTED",
    "Board",
    "BoardSection",
    "BoardView",
    "BucketMap",
    "build_board",
    "group_by_label",
    "render_html",
    "render_markdown",
    "render_table",
]
