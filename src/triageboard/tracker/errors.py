"""Exceptions raised while talking to the issue tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for issue tracker errors."""


class TrackerAuthError(TrackerError):
    """No usable API token was configured."""


class RemoteTransportError(TrackerError):
    """The remote could not be reached (connection, timeout, TLS...)."""


class RemoteProtocolError(TrackerError):
    """The remote answered with a non-success status."""

    def __init__(self, message: str, status_code: int, raw: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw  # Response body, for diagnostics
