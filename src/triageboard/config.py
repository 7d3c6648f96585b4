"""Configuration management for the triage board."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from triageboard.triage.views import BUILTIN_VIEWS, BoardView

DEFAULT_CONFIG_PATH = Path(".triageboard/config.yaml")


class GitLabConfig(BaseModel):
    """GitLab connection settings. The API token comes from GITLAB_API_KEY."""

    base_url: str = Field(default="https://gitlab.com/api/v4", description="GitLab API root")
    project_id: int = Field(default=0, description="Numeric ID of the project to triage")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    dry_run: bool = Field(default=False, description="Log label changes without executing")


class ServerConfig(BaseModel):
    """Dashboard server settings."""

    host: str = "0.0.0.0"
    port: int = 8080


class ViewConfig(BaseModel):
    """A view as written in the config file."""

    title: str = ""
    label_order: list[str] = Field(default_factory=list, description="Bucket names in priority order")
    show_planned_month: bool = False


class Settings(BaseModel):
    """Triage board configuration."""

    gitlab: GitLabConfig = Field(default_factory=GitLabConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    views: dict[str, ViewConfig] = Field(default_factory=dict, description="Custom views, merged over the built-ins")
    default_view: str = Field(default="msw", description="View shown by default")

    @model_validator(mode="after")
    def validate_default_view(self) -> Settings:
        """Validate default_view names a built-in or configured view."""
        views = self.all_views()
        if self.default_view not in views:
            raise ValueError(f"default_view '{self.default_view}' is not a view. Available: {', '.join(sorted(views))}")
        return self

    @classmethod
    def load(cls, config_path: Path | None = None) -> Settings:
        """Load configuration from file (if present), then apply environment overrides.

        Raises:
            ValueError: If the file fails validation, or GITLAB_PROJ_ID is set
                but is not an integer.
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
            settings = cls.model_validate(data)
        else:
            settings = cls()

        settings.apply_env()
        return settings

    def apply_env(self) -> None:
        """Override settings from GITLAB_PROJ_ID and GITLAB_BASE_URL."""
        project_id = os.getenv("GITLAB_PROJ_ID", "").strip()
        if project_id:
            try:
                self.gitlab.project_id = int(project_id)
            except ValueError as e:
                raise ValueError(f"GITLAB_PROJ_ID must be an integer, got {project_id!r}") from e

        base_url = os.getenv("GITLAB_BASE_URL", "").strip()
        if base_url:
            self.gitlab.base_url = base_url

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)

    def all_views(self) -> dict[str, BoardView]:
        """Built-in views overlaid with the configured ones."""
        views = dict(BUILTIN_VIEWS)
        for name, view in self.views.items():
            views[name] = BoardView(name=name, **view.model_dump())
        return views

    def get_view(self, name: str | None = None) -> BoardView:
        """Look up a view by name (default_view when None).

        Raises:
            KeyError: If no view has that name.
        """
        views = self.all_views()
        name = name or self.default_view
        if name not in views:
            raise KeyError(f"Unknown view '{name}'. Available: {', '.join(sorted(views))}")
        return views[name]
