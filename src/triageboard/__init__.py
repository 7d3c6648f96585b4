"""Triage board: open GitLab issues grouped into label-ordered buckets."""

from triageboard.tracker import (
    GitLabClient,
    Issue,
    RemoteProtocolError,
    RemoteTransportError,
    TrackerError,
    fetch_all_open_issues,
)
from triageboard.triage import UNSORTED, BoardView, build_board, group_by_label

__all__ = [
    "UNSORTED",
    "BoardView",
    "GitLabClient",
    "Issue",
    "RemoteProtocolError",
    "RemoteTransportError",
    "TrackerError",
    "build_board",
    "fetch_all_open_issues",
    "group_by_label",
]
