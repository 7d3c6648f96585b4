"""Tests for the GitLab REST client."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from triageboard.tracker.errors import RemoteProtocolError, RemoteTransportError, TrackerAuthError
from triageboard.tracker.fetcher import fetch_all_open_issues
from triageboard.tracker.gitlab_client import GitLabClient, parse_issue


def issue_json(iid: int, **overrides) -> dict:
    data = {
        "iid": iid,
        "title": f"Issue {iid}",
        "labels": ["HELP!", "T::24-01"],
        "assignee": {"name": "Jane Doe", "username": "jdoe"},
        "created_at": "2024-01-15T09:30:00.000Z",
        "due_date": "2024-02-01",
        "web_url": f"https://gitlab.example.com/g/p/-/issues/{iid}",
    }
    data.update(overrides)
    return data


def make_client(handler, **kwargs) -> GitLabClient:
    return GitLabClient(
        base_url="https://gitlab.example.com/api/v4",
        token="test-token",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestGitLabClientAuth:
    """Test GitLab client authentication."""

    def test_init_with_token_param(self) -> None:
        """Test initialization with explicit token."""
        client = GitLabClient(token="test-token")
        assert client._token == "test-token"
        assert client._headers["PRIVATE-TOKEN"] == "test-token"

    def test_init_with_env_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test initialization with GITLAB_API_KEY env var."""
        monkeypatch.setenv("GITLAB_API_KEY", "env-token")
        client = GitLabClient()
        assert client._token == "env-token"

    def test_init_missing_token_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that missing token raises TrackerAuthError."""
        monkeypatch.delenv("GITLAB_API_KEY", raising=False)
        with pytest.raises(TrackerAuthError, match="No GitLab token provided"):
            GitLabClient()

    def test_base_url_trailing_slash_normalized(self) -> None:
        """Test that trailing slash is removed."""
        client = GitLabClient(base_url="https://gitlab.example.com/api/v4/", token="t")
        assert client.base_url == "https://gitlab.example.com/api/v4"

    def test_client_property_outside_context_raises(self) -> None:
        """Test accessing client outside context raises RuntimeError."""
        client = GitLabClient(token="test")
        with pytest.raises(RuntimeError, match="must be used as async context manager"):
            _ = client.client


class TestParseIssue:
    """Test conversion of GitLab JSON into Issue."""

    def test_full_issue(self) -> None:
        """Test every field is mapped."""
        issue = parse_issue(issue_json(7))

        assert issue.iid == 7
        assert issue.labels == ("HELP!", "T::24-01")
        assert issue.assignee is not None
        assert issue.assignee.name == "Jane Doe"
        assert issue.created_at == datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)
        assert issue.due_date == date(2024, 2, 1)
        assert issue.web_url.endswith("/issues/7")

    def test_optional_fields_absent(self) -> None:
        """Test null assignee, due date and labels."""
        issue = parse_issue(issue_json(8, assignee=None, due_date=None, labels=None))

        assert issue.assignee is None
        assert issue.due_date is None
        assert issue.labels == ()


class TestListOpenIssues:
    """Test the paged issues listing."""

    @pytest.mark.asyncio
    async def test_request_parameters_and_next_page(self) -> None:
        """Test state/page parameters, auth header and X-Next-Page parsing."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[issue_json(1), issue_json(2)], headers={"X-Next-Page": "2"})

        async with make_client(handler) as client:
            page = await client.list_open_issues(111, per_page=100, page=1)

        assert [issue.iid for issue in page.items] == [1, 2]
        assert page.next_page == 2
        assert page.status_code == 200

        request = seen[0]
        assert request.url.path == "/api/v4/projects/111/issues"
        assert request.url.params["state"] == "opened"
        assert request.url.params["per_page"] == "100"
        assert request.url.params["page"] == "1"
        assert request.headers["PRIVATE-TOKEN"] == "test-token"

    @pytest.mark.asyncio
    async def test_empty_next_page_header_means_last_page(self) -> None:
        """Test GitLab's empty X-Next-Page on the last page."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[], headers={"X-Next-Page": ""})

        async with make_client(handler) as client:
            page = await client.list_open_issues(1, per_page=100, page=4)

        assert page.next_page == 0

    @pytest.mark.asyncio
    async def test_non_success_status_is_reported_not_raised(self) -> None:
        """Test a 403 comes back as a page with status and raw body."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "403 Forbidden"})

        async with make_client(handler) as client:
            page = await client.list_open_issues(1, per_page=100, page=1)

        assert page.status_code == 403
        assert page.items == []
        assert "Forbidden" in page.raw

    @pytest.mark.asyncio
    async def test_transport_error_retried_then_raised(self) -> None:
        """Test connection failures are retried and finally re-raised."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("connection refused", request=request)

        with patch("triageboard.tracker.gitlab_client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            async with make_client(handler, max_retries=3) as client:
                with pytest.raises(httpx.ConnectError):
                    await client.list_open_issues(1, per_page=100, page=1)

        assert attempts == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_transport_error_recovers(self) -> None:
        """Test a transient failure followed by success."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json=[issue_json(1)])

        with patch("triageboard.tracker.gitlab_client.asyncio.sleep", new_callable=AsyncMock):
            async with make_client(handler) as client:
                page = await client.list_open_issues(1, per_page=100, page=1)

        assert len(page.items) == 1


class TestFetchThroughClient:
    """End-to-end paging over the real client with a mocked transport."""

    @pytest.mark.asyncio
    async def test_fetch_all_follows_headers(self) -> None:
        """Test three pages linked by X-Next-Page."""
        pages = {
            "1": ([issue_json(1), issue_json(2)], "2"),
            "2": ([issue_json(3)], "3"),
            "3": ([issue_json(4)], ""),
        }
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = request.url.params["page"]
            requested.append(page)
            items, next_page = pages[page]
            return httpx.Response(200, json=items, headers={"X-Next-Page": next_page})

        async with make_client(handler) as client:
            issues = await fetch_all_open_issues(client, 5)

        assert [issue.iid for issue in issues] == [1, 2, 3, 4]
        assert requested == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_fetch_all_transport_failure(self) -> None:
        """Test exhausted retries surface as RemoteTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(RemoteTransportError):
                await fetch_all_open_issues(client, 5)

    @pytest.mark.asyncio
    async def test_fetch_all_non_json_body(self) -> None:
        """Test a 200 HTML page (e.g. a proxy login) raises RemoteProtocolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Sign in</html>")

        async with make_client(handler) as client:
            with pytest.raises(RemoteProtocolError) as exc_info:
                await fetch_all_open_issues(client, 5)

        assert exc_info.value.status_code == 200
        assert exc_info.value.raw == "<html>Sign in</html>"

    @pytest.mark.asyncio
    async def test_fetch_all_issue_missing_field(self) -> None:
        """Test an issue without created_at raises RemoteProtocolError."""
        broken = issue_json(1)
        del broken["created_at"]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[broken])

        async with make_client(handler) as client:
            with pytest.raises(RemoteProtocolError):
                await fetch_all_open_issues(client, 5)


class TestListUsers:
    """Test the users listing."""

    @pytest.mark.asyncio
    async def test_list_users(self) -> None:
        """Test users are parsed."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v4/users"
            return httpx.Response(200, json=[{"id": 3, "username": "jdoe", "name": "Jane Doe", "state": "active"}])

        async with make_client(handler) as client:
            page = await client.list_users(per_page=100, page=1)

        assert page.items[0].username == "jdoe"
        assert page.next_page == 0

    @pytest.mark.asyncio
    async def test_list_users_not_a_list(self) -> None:
        """Test an object body instead of a user list raises RemoteProtocolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "ok"})

        async with make_client(handler) as client:
            with pytest.raises(RemoteProtocolError):
                await client.list_users(per_page=100, page=1)


class TestUpdateIssueLabels:
    """Test label add/remove."""

    @pytest.mark.asyncio
    async def test_add_and_remove(self) -> None:
        """Test PUT payload and parsed result."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=issue_json(9, labels=["M::Must"]))

        async with make_client(handler) as client:
            issue = await client.update_issue_labels(111, 9, add_label="M::Must", remove_label="M::Want")

        assert issue is not None
        assert issue.labels == ("M::Must",)
        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/api/v4/projects/111/issues/9"
        assert json.loads(seen[0].content) == {"add_labels": "M::Must", "remove_labels": "M::Want"}

    @pytest.mark.asyncio
    async def test_requires_a_label(self) -> None:
        """Test calling without labels is rejected."""
        async with make_client(lambda request: httpx.Response(200)) as client:
            with pytest.raises(ValueError, match="At least one"):
                await client.update_issue_labels(1, 1)

    @pytest.mark.asyncio
    async def test_dry_run_makes_no_request(self) -> None:
        """Test dry run logs instead of calling GitLab."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected in dry run")

        async with make_client(handler, dry_run=True) as client:
            assert await client.update_issue_labels(1, 2, add_label="HELP!") is None

    @pytest.mark.asyncio
    async def test_rejected_update_raises_protocol_error(self) -> None:
        """Test non-200 responses raise RemoteProtocolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "404 Not found"})

        async with make_client(handler) as client:
            with pytest.raises(RemoteProtocolError) as exc_info:
                await client.update_issue_labels(1, 2, add_label="HELP!")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unreachable_update_raises_transport_error(self) -> None:
        """Test transport failures raise RemoteTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(RemoteTransportError):
                await client.update_issue_labels(1, 2, remove_label="HELP!")

    @pytest.mark.asyncio
    async def test_truncated_update_body_raises_protocol_error(self) -> None:
        """Test a truncated JSON body raises RemoteProtocolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='{"iid": 2, "title": "Trunc')

        async with make_client(handler) as client:
            with pytest.raises(RemoteProtocolError) as exc_info:
                await client.update_issue_labels(1, 2, add_label="HELP!")

        assert exc_info.value.status_code == 200
