"""Shared fixtures for the triage board tests."""

from __future__ import annotations

import httpx
import pytest


@pytest.fixture
def connect_error() -> httpx.ConnectError:
    """A transport-level failure as httpx raises it."""
    return httpx.ConnectError("connection refused")
