"""Dashboard views: named label orders and the boards built from them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from triageboard.tracker.models import Issue
from triageboard.triage.buckets import UNSORTED, group_by_label

# Labels listed after this marker are still bucketed but not displayed
STOP_MARKER = "STOPHERE"


class BoardView(BaseModel):
    """A named dashboard view."""

    name: str
    title: str = ""
    label_order: list[str] = Field(default_factory=list, description="Bucket names in priority order")
    show_planned_month: bool = Field(default=False, description="Show the T:: planned-month column")

    def visible_labels(self) -> list[str]:
        """Label order up to, not including, the first STOP_MARKER."""
        if STOP_MARKER in self.label_order:
            return self.label_order[: self.label_order.index(STOP_MARKER)]
        return list(self.label_order)


LIST_VIEW = BoardView(
    name="list",
    title="List",
    label_order=[
        "HELP!",
        "Customer Communication",
        UNSORTED,
        "T::23-12",
        "T::24-01",
        "T::24-02",
        "T::24-03",
        "T::24-04",
        "T::24-05",
        "T::24-06",
        "T::24-07",
        "T::24-08",
        "T::24-09",
        "T::24-10",
        "T::24-11",
        "T::24-12",
        "T::Future",
        "STIG:CAT-2",
        "STIG:CAT-3",
    ],
)

MUST_SHOULD_WANT_VIEW = BoardView(
    name="msw",
    title="Must/Should/Want",
    label_order=[
        "HELP!",
        "M::Must",
        "M::Should",
        "M::Want",
        UNSORTED,
        STOP_MARKER,
        "Customer Communication",
        "STIG:CAT-2",
        "STIG:CAT-3",
    ],
    show_planned_month=True,
)

BUILTIN_VIEWS: dict[str, BoardView] = {view.name: view for view in (LIST_VIEW, MUST_SHOULD_WANT_VIEW)}


@dataclass
class BoardSection:
    """One displayed bucket."""

    label: str
    issues: list[Issue] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.issues)


@dataclass
class Board:
    """A view's buckets, ready for rendering."""

    view: BoardView
    sections: list[BoardSection] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        """Number of issues shown on the board."""
        return sum(len(section) for section in self.sections)


def build_board(issues: Iterable[Issue], view: BoardView) -> Board:
    """Group issues with the view's full label order and keep the visible sections.

    Buckets that received nothing still get an (empty) section so every
    visible label is rendered.
    """
    groups = group_by_label(issues, view.label_order)
    sections = [BoardSection(label=label, issues=groups.get(label, [])) for label in view.visible_labels()]
    return Board(view=view, sections=sections)
