"""Baking page: how the current head reached us and how fast it was applied."""

from __future__ import annotations

from rich.console import Group
from rich.text import Text

from ..models import BlockApplicationStatistics
from ..state import ActiveWidget, State
from ..tui_utils import PLACEHOLDER, time_cell
from .common import frame_table


def _span(start: int | None, end: int | None) -> tuple[str, str]:
    if start is None or end is None:
        return PLACEHOLDER
    return time_cell(end - start)


def render_application_summary(statistics: BlockApplicationStatistics | None) -> Text:
    text = Text()
    if statistics is None:
        text.append("No application statistics for the current head", style="dim")
        return text
    phases = (
        ("Received", _since_block(statistics)),
        (
            "Header",
            _span(statistics.download_block_header_start, statistics.download_block_header_end),
        ),
        (
            "Operations",
            _span(
                statistics.download_block_operations_start,
                statistics.download_block_operations_end,
            ),
        ),
        ("Load", _span(statistics.load_data_start, statistics.load_data_end)),
        ("Apply", _span(statistics.apply_block_start, statistics.apply_block_end)),
        ("Store", _span(statistics.store_result_start, statistics.store_result_end)),
    )
    for label, (value, style) in phases:
        text.append(f"{label} ", style="dim")
        text.append(value, style=style)
        text.append("  ")
    if statistics.baker:
        text.append("Baker ", style="dim")
        text.append(statistics.baker)
    return text


def _since_block(statistics: BlockApplicationStatistics) -> tuple[str, str]:
    return time_cell(statistics.receive_timestamp - statistics.block_timestamp)


def render_baking_page(state: State) -> Group:
    head_hash = state.synchronization.current_head_header.hash
    return Group(
        render_application_summary(state.baking.application_statistics.get(head_hash)),
        frame_table(
            state.baking.table,
            "Block propagation",
            state,
            focused=state.ui.active_widget is ActiveWidget.BAKING_TABLE,
        ),
    )
