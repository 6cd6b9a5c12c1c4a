"""Statistics page: mempool operations and the per-peer details of the selected one."""

from __future__ import annotations

from rich.console import Group

from ..state import ActiveWidget, State
from .common import frame_table


def render_statistics_page(state: State) -> Group:
    operations = state.operations
    selected = operations.selected_hash
    details_title = f"Details {selected[:12]}" if selected else "Details"
    return Group(
        frame_table(
            operations.main_table,
            f"Operations ({len(operations.main_table.content)})",
            state,
            focused=state.ui.active_widget is ActiveWidget.STATISTICS_MAIN,
        ),
        frame_table(
            operations.details_table,
            details_title,
            state,
            focused=state.ui.active_widget is ActiveWidget.STATISTICS_DETAILS,
        ),
    )
