"""Data models for GitLab issue representation.

These models represent the structure of GitLab issues and users as
returned by the REST API, plus the shape of a single listing page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

BUG_LABEL = "Type::Bug"
PLANNED_MONTH_PREFIX = "T::"


@dataclass(frozen=True)
class IssueAuthor:
    """A user reference embedded in an issue (assignee)."""

    name: str
    username: str = ""


@dataclass(frozen=True)
class Issue:
    """An open GitLab issue with the fields the dashboard needs.

    Issues are read-only once fetched; grouping and rendering never
    modify them.
    """

    iid: int  # Project-scoped ID
    title: str
    created_at: datetime
    labels: tuple[str, ...] = ()
    assignee: IssueAuthor | None = None
    due_date: date | None = None
    web_url: str = ""

    def has_label(self, label: str) -> bool:
        """Check for an exact (case-sensitive) label match."""
        return label in self.labels

    @property
    def is_bug(self) -> bool:
        """Check if the issue is labeled as a bug."""
        return self.has_label(BUG_LABEL)

    @property
    def assignee_initials(self) -> str:
        """Initials of the assignee's name, e.g. "Jane Q Doe" -> "JQD"."""
        if self.assignee is None:
            return ""
        return "".join(part[0] for part in self.assignee.name.split(" ") if part)

    @property
    def planned_months(self) -> list[str]:
        """Suffixes of the planned-month labels (T::24-01 -> 24-01)."""
        return [label[len(PLANNED_MONTH_PREFIX) :] for label in self.labels if label.startswith(PLANNED_MONTH_PREFIX)]

    def age_days(self, now: datetime | None = None) -> int:
        """Whole days elapsed since the issue was created."""
        if now is None:
            now = datetime.now(timezone.utc)
        return int((now - self.created_at).total_seconds() // 86400)


@dataclass(frozen=True)
class GitLabUser:
    """A GitLab user account."""

    id: int
    username: str
    name: str
    state: str = "active"


@dataclass
class IssuePage:
    """One page of a paginated listing.

    next_page is 0 when the response carried no further page. raw keeps
    the response body for diagnostics when the status is not a success.
    """

    items: list[Issue] = field(default_factory=list)
    next_page: int = 0
    status_code: int = 200
    raw: str = ""


@dataclass
class UserPage:
    """One page of the users listing."""

    items: list[GitLabUser] = field(default_factory=list)
    next_page: int = 0
    status_code: int = 200
    raw: str = ""
