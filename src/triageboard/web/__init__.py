"""Web dashboard for the triage board."""

from triageboard.web.app import DashboardContext, create_app, run

__all__ = ["DashboardContext", "create_app", "run"]
