"""Synchronization page: download and application progress, cycles, and peers."""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..state import ActiveWidget, State
from ..tui_utils import PLACEHOLDER, format_bytes
from .common import frame_table


def _transfer_panel(state: State) -> Panel:
    transfer = state.synchronization.incoming_transfer
    eta = f"{transfer.eta:.0f}s" if transfer.eta is not None else PLACEHOLDER[0]
    text = Text()
    text.append("Blocks ", style="dim")
    text.append(f"{transfer.downloaded_blocks}/{transfer.current_block_count}")
    text.append("  Headers ", style="dim")
    text.append(str(transfer.downloaded_headers))
    text.append("  ETA ", style="dim")
    text.append(eta)
    text.append("\nBlock rate ", style="dim")
    text.append(f"{transfer.download_rate:.2f}/s (avg {transfer.average_download_rate:.2f}/s)")
    text.append("  Header rate ", style="dim")
    text.append(
        f"{transfer.header_download_rate:.2f}/s (avg {transfer.header_average_download_rate:.2f}/s)"
    )
    return Panel(text, title="Incoming transfer", title_align="left", border_style="bright_black")


def _application_panel(state: State) -> Panel:
    status = state.synchronization.application_status
    text = Text()
    text.append("Speed ", style="dim")
    text.append(
        f"{status.current_application_speed:.2f}/s (avg {status.average_application_speed:.2f}/s)"
    )
    text.append("\nLast applied ", style="dim")
    if status.last_applied_block_hash is None:
        text.append(*PLACEHOLDER)
    else:
        text.append(f"{status.last_applied_block_level} {status.last_applied_block_hash[:12]}")
    return Panel(text, title="Block application", title_align="left", border_style="bright_black")


def _cycles_table(state: State) -> Table:
    table = Table(box=None, padding=(0, 1), header_style="white dim")
    for name in ("CYCLE", "HEADERS", "OPERATIONS", "APPLIED", "DURATION"):
        table.add_column(name, no_wrap=True)
    for cycle in state.synchronization.cycle_data:
        style = "green" if cycle.all_applied else ""
        duration = f"{cycle.duration:.1f}s" if cycle.duration is not None else PLACEHOLDER[0]
        table.add_row(
            str(cycle.id),
            str(cycle.headers),
            str(cycle.operations),
            str(cycle.applications),
            duration,
            style=style,
        )
    return table


def render_synchronization_page(state: State) -> Group:
    sync = state.synchronization
    groups = len(sync.block_metrics)
    finished = sum(1 for metrics in sync.block_metrics if metrics.all_downloaded)
    downloaded = sum(metrics.finished_blocks for metrics in sync.block_metrics)
    summary = Text(
        f"Block groups {finished}/{groups} downloaded, {downloaded} blocks, "
        f"{format_bytes(sum(row.transferred_bytes for row in sync.peers_table.content))} "
        "from peers",
        style="dim",
    )
    return Group(
        _transfer_panel(state),
        _application_panel(state),
        Panel(
            _cycles_table(state),
            title="Cycles",
            title_align="left",
            border_style="bright_black",
        ),
        summary,
        frame_table(
            sync.peers_table,
            "Peers",
            state,
            focused=state.ui.active_widget is ActiveWidget.PEER_TABLE,
        ),
    )
