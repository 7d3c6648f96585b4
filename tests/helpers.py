"""Issue builders and an in-memory issue source shared by the tests."""

from __future__ import annotations

from datetime import date, datetime, timezone

from triageboard.tracker.models import GitLabUser, Issue, IssueAuthor, IssuePage, UserPage

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_issue(
    iid: int,
    *labels: str,
    title: str | None = None,
    assignee: str | None = None,
    created_at: datetime | None = None,
    due_date: date | None = None,
) -> Issue:
    """Helper to build an Issue with sensible defaults."""
    return Issue(
        iid=iid,
        title=title if title is not None else f"Issue {iid}",
        created_at=created_at or datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc),
        labels=tuple(labels),
        assignee=IssueAuthor(name=assignee) if assignee else None,
        due_date=due_date,
        web_url=f"https://gitlab.example.com/group/project/-/issues/{iid}",
    )


class FakeIssueSource:
    """In-memory paged listing.

    pages holds the items of each page; a page whose entry is an int is
    answered with that status code instead, and an Exception entry is
    raised. Every call is recorded.
    """

    def __init__(self, pages: list, users: list[list[GitLabUser]] | None = None) -> None:
        self.pages = pages
        self.users = users or [[]]
        self.calls: list[tuple[int, int, int]] = []
        self.user_calls: list[tuple[int, int]] = []
        self.label_updates: list[tuple[int, int, str | None, str | None]] = []
        self.update_error: Exception | None = None

    async def __aenter__(self) -> FakeIssueSource:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        return None

    async def list_open_issues(self, project_id: int, per_page: int, page: int) -> IssuePage:
        self.calls.append((project_id, per_page, page))
        entry = self.pages[page - 1]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, int):
            return IssuePage(status_code=entry, raw=f'{{"message": "{entry}"}}')
        next_page = page + 1 if page < len(self.pages) else 0
        return IssuePage(items=list(entry), next_page=next_page)

    async def list_users(self, per_page: int, page: int) -> UserPage:
        self.user_calls.append((per_page, page))
        next_page = page + 1 if page < len(self.users) else 0
        return UserPage(items=list(self.users[page - 1]), next_page=next_page)

    async def update_issue_labels(
        self,
        project_id: int,
        issue_iid: int,
        add_label: str | None = None,
        remove_label: str | None = None,
    ) -> Issue | None:
        if self.update_error is not None:
            raise self.update_error
        self.label_updates.append((project_id, issue_iid, add_label, remove_label))
        return make_issue(issue_iid, *(label for label in (add_label,) if label))


def make_pages(*sizes: int) -> list[list[Issue]]:
    """Build consecutive pages of issues with increasing iids."""
    pages = []
    next_iid = 1
    for size in sizes:
        pages.append([make_issue(iid) for iid in range(next_iid, next_iid + size)])
        next_iid += size
    return pages
