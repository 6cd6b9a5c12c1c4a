"""Sortable, horizontally scrollable table projection.

An ExtendedTable keeps the column layout, column cursor, sort state and row cursor
for one dataset. The first ``fixed_count`` columns are always shown; the remaining
columns scroll so that the selected column stays in view with the smallest possible
shift. Rows supply their own cells and sort keys through the TableRow interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from rich.style import Style
from rich.table import Table
from rich.text import Text

# One cell of padding on each side of every column
PADDING = 2

_ASCENDING_MARK = " ▲"
_DESCENDING_MARK = " ▼"


class SortOrder(Enum):
    UNSORTED = "unsorted"
    ASCENDING = "ascending"
    DESCENDING = "descending"

    def next(self) -> SortOrder:
        """Unsorted -> Ascending -> Descending -> Ascending..."""
        if self is SortOrder.ASCENDING:
            return SortOrder.DESCENDING
        return SortOrder.ASCENDING


class TableRow(ABC):
    """A row that can render itself and expose a sort key per column."""

    @abstractmethod
    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        """Return one (text, style) pair per table column, in column order."""

    @abstractmethod
    def sort_key(self, column: int, delta_toggle: bool) -> object:
        """Return the value ordering this row by ``column``; None for a missing value."""


Row = TypeVar("Row", bound=TableRow)


def _missing_first(value: object) -> tuple:
    if value is None:
        return (0, 0)
    return (1, value)


def sort_by_focus(rows: list[Row], column: int, delta_toggle: bool) -> list[Row]:
    """Stable ascending sort of rows by the key of ``column``; missing values first."""
    return sorted(rows, key=lambda row: _missing_first(row.sort_key(column, delta_toggle)))


@dataclass
class TableState:
    """Row cursor."""

    selected: int | None = None

    def clamp(self, row_count: int) -> None:
        if row_count == 0:
            self.selected = None
        elif self.selected is not None and self.selected >= row_count:
            self.selected = row_count - 1


@dataclass
class ExtendedTable(Generic[Row]):
    """Layout, cursor and sort state of one table.

    Invariants kept by every method:
        0 <= selected < len(headers)
        fixed_count <= first_rendered_index <= len(headers)
    """

    headers: tuple[str, ...]
    constraints: tuple[int, ...]
    fixed_count: int
    first_rendered_index: int = -1
    rendered_count: int = 0
    width: int = 0
    selected: int = 0
    sorted_by: int | None = None
    sort_order: SortOrder = SortOrder.UNSORTED
    table_state: TableState = field(default_factory=TableState)
    content: list[Row] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.headers = tuple(self.headers)
        self.constraints = tuple(self.constraints)
        if not self.headers:
            raise ValueError("a table needs at least one column")
        if len(self.headers) != len(self.constraints):
            raise ValueError(
                f"{len(self.headers)} headers but {len(self.constraints)} width constraints"
            )
        if not 0 <= self.fixed_count <= len(self.headers):
            raise ValueError(f"fixed_count {self.fixed_count} out of range")
        if self.first_rendered_index < 0:
            self.first_rendered_index = self.fixed_count

    @property
    def minimum_width(self) -> int:
        """Width needed to show every fixed column with its padding."""
        return sum(width + PADDING for width in self.constraints[: self.fixed_count])

    def visible_columns(self, width: int) -> list[int]:
        """Indices of the columns that fit in ``width``: fixed ones, then a scrollable window."""
        columns = list(range(self.fixed_count))
        total = self.minimum_width
        for index in range(self.first_rendered_index, len(self.headers)):
            needed = self.constraints[index] + PADDING
            if total + needed > width:
                break
            total += needed
            columns.append(index)
        return columns

    def renderable_constraints(self, width: int) -> list[int]:
        """Lay the table out for ``width`` and return the widths of the columns that fit."""
        columns = self.visible_columns(width)
        self.width = width
        self.rendered_count = len(columns)
        return [self.constraints[index] for index in columns]

    def _last_visible_index(self) -> int:
        if self.width == 0:
            # not laid out yet, everything counts as visible
            return len(self.headers) - 1
        scrollable = self.rendered_count - self.fixed_count
        return self.first_rendered_index + scrollable - 1

    def _relayout(self) -> None:
        if self.width:
            self.renderable_constraints(self.width)

    def next(self) -> None:
        """Move the column cursor right, scrolling only when it leaves the window."""
        if self.selected + 1 < len(self.headers):
            self.selected += 1
        if self.selected < self.fixed_count:
            return
        while (
            self.selected > self._last_visible_index()
            and self.first_rendered_index < self.selected
        ):
            self.first_rendered_index += 1
            self._relayout()

    def previous(self) -> None:
        """Move the column cursor left, scrolling only when it leaves the window."""
        if self.selected > 0:
            self.selected -= 1
        if self.fixed_count <= self.selected < self.first_rendered_index:
            self.first_rendered_index = self.selected
            self._relayout()

    def set_content(self, rows: list[Row], delta_toggle: bool = False) -> None:
        """Replace the rows, re-apply the current sort and clamp the row cursor."""
        self.content = list(rows)
        self.sort_content(delta_toggle)
        self.table_state.clamp(len(self.content))

    def clear(self) -> None:
        self.content = []
        self.table_state.clamp(0)

    def sort_content(self, delta_toggle: bool) -> None:
        """Sort rows by ``sorted_by``; Descending reverses the ascending order."""
        if self.sorted_by is None or self.sort_order is SortOrder.UNSORTED:
            return
        self.content = sort_by_focus(self.content, self.sorted_by, delta_toggle)
        if self.sort_order is SortOrder.DESCENDING:
            self.content.reverse()

    def cycle_sort(self, delta_toggle: bool) -> None:
        """Sort by the selected column, advancing the order when it is already the sort column."""
        if self.sorted_by != self.selected:
            self.sorted_by = self.selected
            self.sort_order = SortOrder.ASCENDING
        else:
            self.sort_order = self.sort_order.next()
        self.sort_content(delta_toggle)

    def select_next_row(self) -> None:
        if not self.content:
            return
        current = self.table_state.selected
        if current is None:
            self.table_state.selected = 0
        elif current + 1 < len(self.content):
            self.table_state.selected = current + 1

    def select_previous_row(self) -> None:
        if not self.content:
            return
        current = self.table_state.selected
        if current is None:
            self.table_state.selected = 0
        elif current > 0:
            self.table_state.selected = current - 1

    @property
    def selected_row(self) -> Row | None:
        if self.table_state.selected is None or not self.content:
            return None
        return self.content[self.table_state.selected]

    def header_text(self, index: int) -> str:
        """Upper-case header with the sort direction mark on the sorted column."""
        text = self.headers[index].upper()
        if index == self.sorted_by:
            if self.sort_order is SortOrder.ASCENDING:
                text += _ASCENDING_MARK
            elif self.sort_order is SortOrder.DESCENDING:
                text += _DESCENDING_MARK
        return text

    def to_rich(self, width: int, delta_toggle: bool, focused: bool = False) -> Table:
        """Project the visible window of the table into a rich Table.

        Pure with respect to the table state: the layout is recomputed for ``width``
        without being stored.
        """
        table = Table(
            box=None,
            padding=(0, 1),
            expand=False,
            header_style=Style(),
        )
        columns = self.visible_columns(width)
        for index in columns:
            if index == self.selected and focused:
                style = "bold white on bright_black"
            elif index == self.selected:
                style = "bold white"
            else:
                style = "white dim"
            table.add_column(
                Text(self.header_text(index), style=style),
                width=self.constraints[index],
                no_wrap=True,
                overflow="ellipsis",
            )
        for row_index, row in enumerate(self.content):
            cells = row.cells(delta_toggle)
            row_style = "reverse" if row_index == self.table_state.selected else None
            table.add_row(
                *(Text(cells[index][0], style=cells[index][1]) for index in columns),
                style=row_style,
            )
        return table
