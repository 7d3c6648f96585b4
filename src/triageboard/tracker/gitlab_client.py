"""GitLab REST API v4 client using httpx.

This module provides an async HTTP client for the GitLab operations the
dashboard needs: listing open project issues page by page, listing
users, and adding/removing issue labels.
Uses GITLAB_API_KEY environment variable for authentication.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, TypeVar

import httpx

from triageboard.tracker.errors import RemoteProtocolError, RemoteTransportError, TrackerAuthError
from triageboard.tracker.models import GitLabUser, Issue, IssueAuthor, IssuePage, UserPage

logger = logging.getLogger(__name__)

# GitLab API constants
GITLAB_API_BASE = "https://gitlab.com/api/v4"
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
INITIAL_BACKOFF = 1.0  # seconds

_T = TypeVar("_T")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_next_page(response: httpx.Response) -> int:
    """Read the X-Next-Page header; empty or missing means no next page."""
    value = response.headers.get("X-Next-Page", "").strip()
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring malformed X-Next-Page header: {value!r}")
        return 0


def parse_issue(data: dict[str, Any]) -> Issue:
    """Build an Issue from a GitLab issue JSON object."""
    assignee = None
    assignee_data = data.get("assignee")
    if assignee_data:
        assignee = IssueAuthor(
            name=assignee_data.get("name", ""),
            username=assignee_data.get("username", ""),
        )

    due_date = None
    if data.get("due_date"):
        due_date = date.fromisoformat(data["due_date"])

    return Issue(
        iid=data["iid"],
        title=data.get("title", ""),
        created_at=_parse_datetime(data["created_at"]),
        labels=tuple(data.get("labels") or ()),
        assignee=assignee,
        due_date=due_date,
        web_url=data.get("web_url", ""),
    )


def parse_user(data: dict[str, Any]) -> GitLabUser:
    """Build a GitLabUser from a GitLab user JSON object."""
    return GitLabUser(
        id=data["id"],
        username=data.get("username", ""),
        name=data.get("name", ""),
        state=data.get("state", "active"),
    )


def _parse_body(response: httpx.Response, parse: Callable[[Any], _T]) -> _T:
    """Decode a 200 response body, reporting unusable bodies as protocol errors.

    A proxy login page or a truncated body still comes back as 200, so
    decoding and field errors are surfaced the same way as a bad status.
    """
    try:
        return parse(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Malformed GitLab response body: {e}")
        raise RemoteProtocolError(
            f"malformed response from GitLab: {response.text[:200]}",
            status_code=response.status_code,
            raw=response.text,
        ) from e


class GitLabClient:
    """Async GitLab API client.

    Uses GITLAB_API_KEY environment variable for authentication.
    Connection-level failures are retried with exponential backoff; HTTP
    status codes are reported back to the caller untouched.
    """

    def __init__(
        self,
        base_url: str = GITLAB_API_BASE,
        token: str | None = None,
        dry_run: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the GitLab client.

        Args:
            base_url: API root, e.g. https://gitlab.example.com/api/v4.
            token: Personal access token. If None, reads from GITLAB_API_KEY env var.
            dry_run: If True, log label mutations without executing.
            timeout: Request timeout in seconds.
            max_retries: Attempts per request on connection-level failures.
            transport: Optional httpx transport (used by tests).

        Raises:
            TrackerAuthError: If no token is provided or found in environment.
        """
        self.base_url = base_url.rstrip("/")
        self.dry_run = dry_run
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._transport = transport

        self._token = token or os.getenv("GITLAB_API_KEY")
        if not self._token:
            raise TrackerAuthError("No GitLab token provided. Set GITLAB_API_KEY environment variable or pass token parameter.")

        # Never log the token
        self._headers = {
            "Accept": "application/json",
            "PRIVATE-TOKEN": self._token,
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitLabClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("GitLabClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request, retrying connection-level failures.

        Args:
            method: HTTP method (GET, PUT, etc.).
            endpoint: API endpoint relative to the base URL.
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object, whatever its status code.

        Raises:
            httpx.TransportError: If every attempt failed to reach the server.
        """
        for attempt in range(self.max_retries):
            try:
                return await self.client.request(method, endpoint, **kwargs)
            except httpx.TransportError as e:
                if attempt < self.max_retries - 1:
                    wait_time = INITIAL_BACKOFF * (2**attempt)
                    logger.warning(f"Transport error: {e}, retrying in {wait_time:.1f}s (attempt {attempt + 1}/{self.max_retries})")
                    await asyncio.sleep(wait_time)
                    continue
                raise

        # Unreachable: the loop either returns or raises
        raise RuntimeError("Max retries exceeded")

    # =========================================================================
    # Listings
    # =========================================================================

    async def list_open_issues(self, project_id: int, per_page: int, page: int) -> IssuePage:
        """Fetch one page of open issues for a project.

        Args:
            project_id: Numeric project ID.
            per_page: Page size (GitLab caps this at 100).
            page: 1-based page number.

        Returns:
            IssuePage; items are only parsed when the status is 200.
        """
        response = await self._request(
            "GET",
            f"/projects/{project_id}/issues",
            params={"state": "opened", "per_page": per_page, "page": page},
        )
        if response.status_code != 200:
            return IssuePage(status_code=response.status_code, raw=response.text)

        return IssuePage(
            items=_parse_body(response, lambda body: [parse_issue(item) for item in body]),
            next_page=_parse_next_page(response),
            status_code=response.status_code,
            raw=response.text,
        )

    async def list_users(self, per_page: int, page: int) -> UserPage:
        """Fetch one page of users visible to the token."""
        response = await self._request(
            "GET",
            "/users",
            params={"per_page": per_page, "page": page},
        )
        if response.status_code != 200:
            return UserPage(status_code=response.status_code, raw=response.text)

        return UserPage(
            items=_parse_body(response, lambda body: [parse_user(item) for item in body]),
            next_page=_parse_next_page(response),
            status_code=response.status_code,
            raw=response.text,
        )

    # =========================================================================
    # Label Operations
    # =========================================================================

    async def update_issue_labels(
        self,
        project_id: int,
        issue_iid: int,
        add_label: str | None = None,
        remove_label: str | None = None,
    ) -> Issue | None:
        """Add and/or remove a label on an issue.

        Args:
            project_id: Numeric project ID.
            issue_iid: Project-scoped issue ID.
            add_label: Label to add, if any.
            remove_label: Label to remove, if any.

        Returns:
            The updated Issue, or None in dry run mode.

        Raises:
            ValueError: If neither label is given.
            RemoteTransportError: If GitLab could not be reached.
            RemoteProtocolError: If GitLab rejected the update.
        """
        if not add_label and not remove_label:
            raise ValueError("At least one of add_label or remove_label is required")

        payload: dict[str, str] = {}
        if add_label:
            payload["add_labels"] = add_label
        if remove_label:
            payload["remove_labels"] = remove_label

        if self.dry_run:
            logger.info(f"[DRY RUN] Would update labels on #{issue_iid}: {payload}")
            return None

        try:
            response = await self._request(
                "PUT",
                f"/projects/{project_id}/issues/{issue_iid}",
                json=payload,
            )
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"error updating issue #{issue_iid} on GitLab: {e}") from e

        if response.status_code != 200:
            logger.warning(f"GitLab rejected label update on #{issue_iid}: {response.status_code}")
            raise RemoteProtocolError(
                f"unexpected response from GitLab: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
                raw=response.text,
            )

        return _parse_body(response, parse_issue)
