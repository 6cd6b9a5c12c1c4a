"""Endorsements page: per-delegate endorsement progress and a summary by state."""

from __future__ import annotations

from rich.console import Group
from rich.text import Text

from ..state import ActiveWidget, State
from ..tables import EndorsementState
from ..tui_utils import format_time_unit
from .common import frame_table


def render_endorsement_summary(summary: dict[EndorsementState, int]) -> Text:
    text = Text()
    for state in EndorsementState:
        text.append(f" {state.label}: {summary.get(state, 0)} ", style=state.style)
        text.append(" ")
    return text


def _injected_line(state: State) -> Text | None:
    """Timing of our own injected endorsement, if the mempool has seen one."""
    injected = [
        (operation_hash, stats)
        for operation_hash, stats in state.endorsements.mempool_stats.items()
        if stats.is_injected
    ]
    if not injected:
        return None
    operation_hash, stats = injected[-1]
    line = Text()
    line.append("Injected ", style="dim")
    line.append(operation_hash[:12])
    duration = stats.validation_duration
    if duration is not None:
        line.append("  validated in ", style="dim")
        line.append(format_time_unit(duration))
    first_sent = stats.first_sent
    if first_sent is not None:
        line.append("  first sent after ", style="dim")
        line.append(format_time_unit(first_sent))
    return line


def render_endorsements_page(state: State) -> Group:
    endorsements = state.endorsements
    parts = [
        render_endorsement_summary(endorsements.summary),
        frame_table(
            endorsements.table,
            f"Endorsements for level {state.current_level or '-'}",
            state,
            focused=state.ui.active_widget is ActiveWidget.ENDORSER_TABLE,
        ),
    ]
    injected = _injected_line(state)
    if injected is not None:
        parts.insert(1, injected)
    return Group(*parts)
