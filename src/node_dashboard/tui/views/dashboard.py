"""Full-screen frame: header bar, active page, tabs, help bar and footer."""

from __future__ import annotations

from rich.layout import Layout

from ..state import ActivePage, State
from .baking import render_baking_page
from .common import render_header_bar, render_help_bar, render_tabs
from .endorsements import render_endorsements_page
from .footer_bar import render_footer_bar
from .statistics import render_statistics_page
from .synchronization import render_synchronization_page

_PAGES = {
    ActivePage.SYNCHRONIZATION: render_synchronization_page,
    ActivePage.ENDORSEMENTS: render_endorsements_page,
    ActivePage.STATISTICS: render_statistics_page,
    ActivePage.BAKING: render_baking_page,
}


def footer_error(state: State) -> str | None:
    """Draw errors take precedence over the most recent RPC failure."""
    if state.ui.last_draw_error:
        return f"Draw failed: {state.ui.last_draw_error}"
    if state.rpc.last_error is not None:
        target, reason = state.rpc.last_error
        return f"{target.value}: {reason}"
    return None


def render_dashboard(state: State) -> Layout:
    """Build the layout for the active page from committed state.

    Returns:
        Rich Layout with all regions filled
    """
    layout = Layout()
    layout.split_column(
        Layout(render_header_bar(state), name="header", size=1),
        Layout(_PAGES[state.ui.active_page](state), name="body", ratio=1),
        Layout(render_tabs(state), name="tabs", size=1),
        Layout(render_help_bar(state), name="help", size=1),
        Layout(
            render_footer_bar(
                pending_requests=len(state.rpc.pending),
                error_message=footer_error(state),
                terminal_width=state.ui.screen_width or 80,
            ),
            name="footer",
            size=1,
        ),
    )
    return layout
