"""GitLab issue retrieval for the triage board."""

from __future__ import annotations

from triageboard.tracker.errors import (
    RemoteProtocolError,
    RemoteTransportError,
    TrackerAuthError,
    TrackerError,
)
from triageboard.tracker.fetcher import MAX_PAGE_SIZE, IssueSource, fetch_all_open_issues, fetch_all_users
from triageboard.tracker.gitlab_client import GitLabClient
from triageboard.tracker.models import GitLabUser, Issue, IssueAuthor, IssuePage, UserPage

__all__ = [
    "MAX_PAGE_SIZE",
    "GitLabClient",
    "GitLabUser",
    "Issue",
    "IssueAuthor",
    "IssuePage",
    "IssueSource",
    "RemoteProtocolError",
    "RemoteTransportError",
    "TrackerAuthError",
    "TrackerError",
    "UserPage",
    "fetch_all_open_issues",
    "fetch_all_users",
]
