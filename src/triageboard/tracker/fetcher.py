"""Pagination-complete retrieval from the issue tracker.

Pages are requested strictly one after another, following the next-page
number of each response, until a response reports no further page. Any
failure aborts the whole retrieval: a partial issue set would silently
drop issues from the triage board.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from triageboard.tracker.errors import RemoteProtocolError, RemoteTransportError
from triageboard.tracker.models import GitLabUser, Issue, IssuePage, UserPage

logger = logging.getLogger(__name__)

# GitLab's maximum page size
MAX_PAGE_SIZE = 100


class IssueSource(Protocol):
    """The paged remote listing the fetcher reads from."""

    async def list_open_issues(self, project_id: int, per_page: int, page: int) -> IssuePage: ...

    async def list_users(self, per_page: int, page: int) -> UserPage: ...


async def _collect_pages(
    fetch_page: Callable[[int], Awaitable[IssuePage | UserPage]],
    what: str,
) -> list[Any]:
    """Accumulate every page's items, starting at page 1.

    Raises:
        RemoteTransportError: If a page request could not reach the remote.
        RemoteProtocolError: If a page came back with a non-success status.
    """
    items: list[Any] = []
    page = 1
    while True:
        try:
            result = await fetch_page(page)
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"error retrieving {what} from GitLab: {e}") from e

        if result.status_code != 200:
            logger.warning(f"Unexpected status {result.status_code} on {what} page {page}")
            raise RemoteProtocolError(
                f"unexpected response from GitLab: {result.status_code} {result.raw[:200]}",
                status_code=result.status_code,
                raw=result.raw,
            )

        items.extend(result.items)
        logger.debug(f"Fetched {what} page {page}: {len(result.items)} item(s), next page {result.next_page or '-'}")

        if not result.next_page:
            break
        page = result.next_page

    return items


async def fetch_all_open_issues(source: IssueSource, project_id: int) -> list[Issue]:
    """Fetch every open issue of a project, in the order GitLab returns them.

    Args:
        source: Remote listing to page through (normally a GitLabClient).
        project_id: Numeric project ID.

    Returns:
        All open issues, page order then within-page order.

    Raises:
        RemoteTransportError: If the remote could not be reached.
        RemoteProtocolError: If any page returned a non-success status.
    """

    async def fetch_page(page: int) -> IssuePage:
        return await source.list_open_issues(project_id, per_page=MAX_PAGE_SIZE, page=page)

    issues: list[Issue] = await _collect_pages(fetch_page, "issues")
    logger.info(f"Fetched {len(issues)} open issue(s) from project {project_id}")
    return issues


async def fetch_all_users(source: IssueSource) -> list[GitLabUser]:
    """Fetch every user visible to the configured token."""

    async def fetch_page(page: int) -> UserPage:
        return await source.list_users(per_page=MAX_PAGE_SIZE, page=page)

    users: list[GitLabUser] = await _collect_pages(fetch_page, "users")
    logger.info(f"Fetched {len(users)} user(s)")
    return users
