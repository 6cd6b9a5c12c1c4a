"""Tests for ExtendedTable layout, scrolling, sorting and rendering."""

from __future__ import annotations

import random
from dataclasses import dataclass

import pytest
from rich.console import Console

from node_dashboard.tui.extended_table import (
    PADDING,
    ExtendedTable,
    SortOrder,
    TableRow,
    TableState,
    sort_by_focus,
)


@dataclass
class SampleRow(TableRow):
    name: str
    absolute: int | None
    delta: int | None = None

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        value = self.delta if delta_toggle else self.absolute
        return [
            (self.name, ""),
            ("-" if value is None else str(value), "bright_black" if value is None else ""),
            ("x", ""),
            ("y", ""),
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        if column == 0:
            return self.name
        if column == 1:
            return self.delta if delta_toggle else self.absolute
        return None


@pytest.fixture
def table() -> ExtendedTable[SampleRow]:
    """Four columns of width 10, the first one fixed."""
    return ExtendedTable(
        headers=("name", "value", "third", "fourth"),
        constraints=(10, 10, 10, 10),
        fixed_count=1,
    )


class TestConstruction:
    """Tests for table validation and defaults."""

    def test_first_rendered_defaults_to_fixed_count(self, table: ExtendedTable) -> None:
        """Scrolling starts right after the fixed columns."""
        assert table.first_rendered_index == 1
        assert table.sort_order is SortOrder.UNSORTED
        assert table.sorted_by is None

    def test_mismatched_constraints_rejected(self) -> None:
        """Every header needs a width constraint."""
        with pytest.raises(ValueError):
            ExtendedTable(headers=("a", "b"), constraints=(1,), fixed_count=0)

    def test_fixed_count_out_of_range_rejected(self) -> None:
        """fixed_count cannot exceed the number of columns."""
        with pytest.raises(ValueError):
            ExtendedTable(headers=("a",), constraints=(1,), fixed_count=2)

    def test_empty_headers_rejected(self) -> None:
        """A table needs at least one column."""
        with pytest.raises(ValueError):
            ExtendedTable(headers=(), constraints=(), fixed_count=0)


class TestLayout:
    """Tests for the greedy column layout."""

    def test_width_25_fits_fixed_and_one_scrollable(self, table: ExtendedTable) -> None:
        """10+2 for the fixed column plus 10+2 for one scrollable column fit in 25."""
        widths = table.renderable_constraints(25)

        assert widths == [10, 10]
        assert table.rendered_count == 2
        assert table.width == 25

    def test_exact_fit_includes_column(self, table: ExtendedTable) -> None:
        """A column that exactly fills the remaining width is included."""
        assert table.visible_columns(3 * (10 + PADDING)) == [0, 1, 2]

    def test_wide_terminal_shows_everything(self, table: ExtendedTable) -> None:
        """All columns are shown when the width allows it."""
        assert table.visible_columns(200) == [0, 1, 2, 3]

    def test_fixed_columns_always_included(self, table: ExtendedTable) -> None:
        """Fixed columns are kept even when the width is too small for them."""
        assert table.visible_columns(5) == [0]

    def test_visible_columns_does_not_store_layout(self, table: ExtendedTable) -> None:
        """visible_columns is a pure query."""
        table.visible_columns(25)
        assert table.width == 0
        assert table.rendered_count == 0

    def test_minimum_width(self, table: ExtendedTable) -> None:
        """The minimum width covers the fixed columns and their padding."""
        assert table.minimum_width == 12


class TestColumnNavigation:
    """Tests for the minimal-scroll column cursor."""

    def test_next_within_window_does_not_scroll(self, table: ExtendedTable) -> None:
        """Moving onto a visible column leaves the window in place."""
        table.renderable_constraints(25)
        table.next()

        assert table.selected == 1
        assert table.first_rendered_index == 1

    def test_next_past_window_scrolls_by_one(self, table: ExtendedTable) -> None:
        """Moving past the last visible column shifts the window just enough."""
        table.renderable_constraints(25)
        table.next()
        table.next()

        assert table.selected == 2
        assert table.first_rendered_index == 2
        assert table.visible_columns(25) == [0, 2]

    def test_previous_scrolls_back(self, table: ExtendedTable) -> None:
        """Moving left of the window brings the selected column back into view."""
        table.renderable_constraints(25)
        table.next()
        table.next()
        table.previous()

        assert table.selected == 1
        assert table.first_rendered_index == 1

    def test_previous_into_fixed_column_keeps_window(self, table: ExtendedTable) -> None:
        """Selecting a fixed column never scrolls."""
        table.renderable_constraints(25)
        table.next()
        table.previous()

        assert table.selected == 0
        assert table.first_rendered_index == 1

    def test_cursor_clamped_at_both_ends(self, table: ExtendedTable) -> None:
        """The column cursor stays inside [0, len(headers))."""
        table.renderable_constraints(200)
        table.previous()
        assert table.selected == 0

        for _ in range(10):
            table.next()
        assert table.selected == 3
        assert table.fixed_count <= table.first_rendered_index <= len(table.headers)

    def test_selected_column_always_visible(self, table: ExtendedTable) -> None:
        """After any move the selected column is part of the layout."""
        table.renderable_constraints(25)
        for _ in range(3):
            table.next()
            assert table.selected in table.visible_columns(25)
        for _ in range(3):
            table.previous()
            assert table.selected in table.visible_columns(25)

    @pytest.mark.parametrize("seed", range(5))
    def test_random_moves_keep_layout_and_cursor_in_bounds(self, seed: int) -> None:
        """Any width and any move sequence keep the layout and cursors in range."""
        rng = random.Random(seed)
        constraints = tuple(rng.randint(1, 20) for _ in range(8))
        table = ExtendedTable(
            headers=tuple(f"c{index}" for index in range(8)),
            constraints=constraints,
            fixed_count=2,
        )
        widest = table.minimum_width + max(constraints) + PADDING

        for width in range(table.minimum_width, sum(constraints) + 8 * PADDING + 5):
            table.renderable_constraints(width)
            for _ in range(20):
                if rng.random() < 0.5:
                    table.next()
                else:
                    table.previous()
                widths = table.renderable_constraints(width)

                assert sum(w + PADDING for w in widths) <= width
                assert 0 <= table.selected < len(table.headers)
                assert table.fixed_count <= table.first_rendered_index <= len(table.headers)
                if width >= widest:
                    assert table.selected in table.visible_columns(width)


class TestSorting:
    """Tests for the sort cycle and sort keys."""

    def test_sort_order_cycle(self) -> None:
        """Unsorted goes to Ascending, then Descending and Ascending alternate."""
        assert SortOrder.UNSORTED.next() is SortOrder.ASCENDING
        assert SortOrder.ASCENDING.next() is SortOrder.DESCENDING
        assert SortOrder.DESCENDING.next() is SortOrder.ASCENDING

    def test_cycle_sort_on_new_column_starts_ascending(self, table: ExtendedTable) -> None:
        """Sorting a new column starts with ascending order."""
        table.set_content([SampleRow("b", 2), SampleRow("a", 1)])
        table.cycle_sort(delta_toggle=False)

        assert table.sorted_by == 0
        assert table.sort_order is SortOrder.ASCENDING
        assert [row.name for row in table.content] == ["a", "b"]

    def test_cycle_sort_twice_descends(self, table: ExtendedTable) -> None:
        """Sorting the same column again reverses the order."""
        table.set_content([SampleRow("a", 1), SampleRow("c", 3), SampleRow("b", 2)])
        table.cycle_sort(delta_toggle=False)
        table.cycle_sort(delta_toggle=False)

        assert table.sort_order is SortOrder.DESCENDING
        assert [row.name for row in table.content] == ["c", "b", "a"]

    def test_sorting_sorted_content_changes_nothing(self, table: ExtendedTable) -> None:
        """Sorting ascending content ascending again keeps it as is, ties included."""
        table.set_content(
            [SampleRow("b", 2), SampleRow("a", 1), SampleRow("c", 2), SampleRow("d", None)]
        )
        table.selected = 1
        table.cycle_sort(delta_toggle=False)
        once = list(table.content)

        table.sort_content(delta_toggle=False)

        assert table.content == once
        assert [row.name for row in once] == ["d", "a", "b", "c"]

    def test_descending_then_ascending_restores_order(self, table: ExtendedTable) -> None:
        """Toggling back to ascending brings back the ascending order."""
        table.set_content([SampleRow("b", 2), SampleRow("a", 1), SampleRow("c", 3)])
        table.cycle_sort(delta_toggle=False)
        ascending = list(table.content)

        table.cycle_sort(delta_toggle=False)
        assert table.content == ascending[::-1]
        table.cycle_sort(delta_toggle=False)

        assert table.sort_order is SortOrder.ASCENDING
        assert table.content == ascending

    def test_missing_values_sort_first(self) -> None:
        """A missing value is smaller than any present value."""
        rows = [SampleRow("a", 5), SampleRow("b", None), SampleRow("c", 1)]
        ordered = sort_by_focus(rows, 1, delta_toggle=False)

        assert [row.name for row in ordered] == ["b", "c", "a"]

    def test_sort_is_stable(self) -> None:
        """Rows with equal keys keep their relative order."""
        rows = [SampleRow("first", 1), SampleRow("second", 1), SampleRow("third", 0)]
        ordered = sort_by_focus(rows, 1, delta_toggle=False)

        assert [row.name for row in ordered] == ["third", "first", "second"]

    def test_delta_toggle_selects_sort_key(self) -> None:
        """With the toggle on the derived delta orders the rows."""
        rows = [SampleRow("a", 1, delta=9), SampleRow("b", 2, delta=3)]

        assert [r.name for r in sort_by_focus(rows, 1, delta_toggle=False)] == ["a", "b"]
        assert [r.name for r in sort_by_focus(rows, 1, delta_toggle=True)] == ["b", "a"]

    def test_set_content_reapplies_sort(self, table: ExtendedTable) -> None:
        """New content is sorted with the current sort settings."""
        table.sorted_by = 1
        table.sort_order = SortOrder.DESCENDING
        table.set_content([SampleRow("a", 1), SampleRow("b", 3), SampleRow("c", 2)])

        assert [row.name for row in table.content] == ["b", "c", "a"]

    def test_header_marks_sorted_column(self, table: ExtendedTable) -> None:
        """The sorted column header carries the direction mark."""
        table.cycle_sort(delta_toggle=False)
        assert table.header_text(0) == "NAME ▲"
        table.cycle_sort(delta_toggle=False)
        assert table.header_text(0) == "NAME ▼"
        assert table.header_text(1) == "VALUE"


class TestRowCursor:
    """Tests for the row cursor."""

    def test_clamped_after_content_shrinks(self, table: ExtendedTable) -> None:
        """The row cursor never points past the last row."""
        table.set_content([SampleRow(str(i), i) for i in range(5)])
        table.table_state.selected = 4
        table.set_content([SampleRow("a", 1), SampleRow("b", 2)])

        assert table.table_state.selected == 1

    def test_cleared_content_resets_cursor(self, table: ExtendedTable) -> None:
        """An empty table has no selected row."""
        table.set_content([SampleRow("a", 1)])
        table.select_next_row()
        table.clear()

        assert table.table_state.selected is None
        assert table.selected_row is None

    def test_row_navigation(self, table: ExtendedTable) -> None:
        """Down then up moves through rows and stops at the edges."""
        table.set_content([SampleRow("a", 1), SampleRow("b", 2)])
        table.select_next_row()
        assert table.table_state.selected == 0
        table.select_next_row()
        table.select_next_row()
        assert table.table_state.selected == 1
        assert table.selected_row.name == "b"
        table.select_previous_row()
        table.select_previous_row()
        assert table.table_state.selected == 0

    def test_table_state_clamp_keeps_unselected(self) -> None:
        """Clamping an unselected cursor leaves it unselected."""
        state = TableState()
        state.clamp(3)
        assert state.selected is None


class TestRendering:
    """Tests for projecting the table into rich."""

    def test_renders_only_visible_columns(self, table: ExtendedTable) -> None:
        """Columns outside the window are left out of the rich table."""
        table.set_content([SampleRow("alpha", 1)])
        rendered = table.to_rich(25, delta_toggle=False)

        assert len(rendered.columns) == 2

    def test_missing_value_renders_placeholder(self, table: ExtendedTable) -> None:
        """A missing value still fills its cell with the placeholder glyph."""
        table.set_content([SampleRow("alpha", None)])
        console = Console(width=80, record=True, force_terminal=False)
        console.print(table.to_rich(80, delta_toggle=False))

        output = console.export_text()
        assert "alpha" in output
        assert "-" in output

    def test_render_does_not_change_layout(self, table: ExtendedTable) -> None:
        """Rendering leaves the stored layout untouched."""
        table.renderable_constraints(25)
        table.to_rich(200, delta_toggle=False)

        assert table.width == 25
        assert table.rendered_count == 2
