"""Widgets shared by every page: header bar, page tabs, help bar, table frame."""

from __future__ import annotations

from rich.panel import Panel
from rich.text import Text

from ..extended_table import ExtendedTable
from ..reducers import FRAME_BORDER
from ..state import ActivePage, State
from ..tui_utils import short_hash

_BLOCK_HASH_KEEP = 6


def _next_level(levels, current_level: int) -> int | None:
    upcoming = [level for level in levels if level > current_level]
    return min(upcoming) if upcoming else None


def _countdown(state: State, level: int | None) -> str:
    if level is None:
        return "-"
    blocks = level - state.current_level
    delay = state.synchronization.network_constants.minimal_block_delay
    if delay:
        return f"{blocks} blocks (~{blocks * delay}s)"
    return f"{blocks} blocks"


def render_header_bar(state: State) -> Text:
    """Current head summary, plus the baker's next rights when a baker is configured."""
    sync = state.synchronization
    header = sync.current_head_header
    remote = sync.best_remote_level

    bar = Text()
    bar.append("Block: ", style="dim")
    bar.append(short_hash(header.hash, _BLOCK_HASH_KEEP) if header.hash else "-", style="bold")
    bar.append("  Local: ", style="dim")
    bar.append(str(header.level) if header.level else "-")
    bar.append("  Remote: ", style="dim")
    bar.append(str(remote) if remote is not None else "-")
    bar.append("  Protocol: ", style="dim")
    bar.append(header.protocol[:8] if header.protocol else "-")
    if sync.current_head_metadata is not None:
        bar.append("  Cycle: ", style="dim")
        bar.append(
            f"{sync.current_head_metadata.cycle} ({sync.current_head_metadata.cycle_position})"
        )

    if state.baker_address:
        baking = _next_level(state.baking.rights, state.current_level)
        endorsing = _next_level(state.endorsements.rights_with_time, state.current_level)
        bar.append("  Baking in: ", style="dim")
        bar.append(_countdown(state, baking), style="green")
        bar.append("  Endorsing in: ", style="dim")
        bar.append(_countdown(state, endorsing), style="green")
    return bar


def render_tabs(state: State) -> Text:
    tabs = Text()
    for page in ActivePage:
        style = "on bright_black" if page is state.ui.active_page else ""
        tabs.append(f" {page.hotkey} ", style=f"dim {style}".strip())
        tabs.append(f"{page.value.upper()} ", style=f"bold {style}".strip())
        tabs.append(" ")
    return tabs


def render_help_bar(state: State) -> Text:
    delta_label = "Concrete values" if state.ui.delta_toggle else "Delta values"
    bar = Text()
    for key, label in (
        ("←→↑↓", "Navigate Table"),
        ("s", "Sort"),
        ("d", delta_label),
        ("TAB", "Switch Focus"),
        ("F10", "Quit"),
    ):
        bar.append(f" {key} ", style="bold white on bright_black")
        bar.append(f" {label}  ", style="dim")
    return bar


def frame_table(
    table: ExtendedTable,
    title: str,
    state: State,
    focused: bool,
) -> Panel:
    """Render a table inside a titled border, highlighted when it has focus."""
    width = max(state.ui.screen_width - FRAME_BORDER, 0)
    return Panel(
        table.to_rich(width, state.ui.delta_toggle, focused=focused),
        title=title,
        title_align="left",
        border_style="white" if focused else "bright_black",
        padding=(0, 0),
    )
