"""Tests for page rendering."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from node_dashboard.tui.models import (
    BakingRights,
    BlockApplicationStatistics,
    CurrentHeadHeader,
    CurrentHeadMetadata,
    NetworkConstants,
)
from node_dashboard.tui.services.rpc_service import RpcTarget
from node_dashboard.tui.state import ActivePage, State
from node_dashboard.tui.views.baking import render_application_summary
from node_dashboard.tui.views.common import render_header_bar, render_help_bar, render_tabs
from node_dashboard.tui.views.dashboard import footer_error, render_dashboard


def _render(renderable, width: int = 120, height: int = 40) -> str:
    console = Console(file=io.StringIO(), width=width, height=height, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


@pytest.fixture
def state() -> State:
    """State with a current head and a drawn frame width."""
    state = State(baker_address="tz1me")
    state.synchronization.current_head_header = CurrentHeadHeader(
        level=100, hash="BLockHashOfTheHead", protocol="PtJakart2xVj"
    )
    state.ui.screen_width = 120
    return state


class TestRenderDashboard:
    """Tests for the full frame."""

    @pytest.mark.parametrize(
        ("page", "expected"),
        [
            (ActivePage.SYNCHRONIZATION, "Peers"),
            (ActivePage.ENDORSEMENTS, "Endorsements for level 100"),
            (ActivePage.STATISTICS, "Operations"),
            (ActivePage.BAKING, "Block propagation"),
        ],
    )
    def test_each_page_renders(self, state: State, page: ActivePage, expected: str) -> None:
        """Every page draws its main panel along with tabs and footer."""
        state.ui.active_page = page

        output = _render(render_dashboard(state))

        assert expected in output
        assert "F10 to quit" in output
        assert page.value.upper() in output

    def test_empty_state_renders(self) -> None:
        """A fresh state draws without data."""
        output = _render(render_dashboard(State()), width=80, height=24)
        assert "No requests pending" in output


class TestHeaderBar:
    """Tests for the header summary."""

    def test_head_summary(self, state: State) -> None:
        """Level, shortened hash and protocol prefix are shown."""
        state.synchronization.best_remote_level = 101
        state.synchronization.current_head_metadata = CurrentHeadMetadata(
            cycle=3, level=100, cycle_position=12
        )
        text = render_header_bar(state).plain

        assert "Local: 100" in text
        assert "Remote: 101" in text
        assert "BLockH" in text
        assert "Protocol: PtJakart" in text
        assert "Cycle: 3 (12)" in text

    def test_baker_countdown(self, state: State) -> None:
        """The next baking level is shown as blocks and seconds."""
        state.synchronization.network_constants = NetworkConstants(minimal_block_delay=15)
        state.baking.rights = {
            99: BakingRights(level=99, delegate="tz1me"),
            104: BakingRights(level=104, delegate="tz1me"),
        }

        text = render_header_bar(state).plain

        assert "Baking in: 4 blocks (~60s)" in text
        assert "Endorsing in: -" in text

    def test_no_countdown_without_baker(self) -> None:
        """Without a baker no rights are shown."""
        assert "Baking in" not in render_header_bar(State()).plain


class TestBars:
    """Tests for tabs, help and footer text."""

    def test_tabs_list_every_page(self, state: State) -> None:
        """Tabs show hotkeys for every page."""
        text = render_tabs(state).plain
        for page in ActivePage:
            assert f"{page.hotkey} " in text

    def test_help_bar_follows_delta_toggle(self, state: State) -> None:
        """The delta key label names the mode it switches to."""
        assert "Delta values" in render_help_bar(state).plain
        state.ui.delta_toggle = True
        assert "Concrete values" in render_help_bar(state).plain

    def test_footer_error_prefers_draw_error(self, state: State) -> None:
        """Draw errors win over RPC errors."""
        assert footer_error(state) is None

        state.rpc.last_error = (RpcTarget.BAKING_RIGHTS, "HTTP 404")
        assert footer_error(state) == "BakingRights: HTTP 404"

        state.ui.last_draw_error = "broken pipe"
        assert footer_error(state) == "Draw failed: broken pipe"


class TestApplicationSummary:
    """Tests for the baking page summary line."""

    def test_without_statistics(self) -> None:
        """Missing statistics are announced."""
        assert "No application statistics" in render_application_summary(None).plain

    def test_phases(self) -> None:
        """Phase durations and the receive delay are formatted."""
        statistics = BlockApplicationStatistics(
            block_hash="B",
            block_timestamp=0,
            receive_timestamp=2_000_000,
            apply_block_start=10,
            apply_block_end=3_010,
            baker="tz1baker",
        )
        text = render_application_summary(statistics).plain

        assert "Received 2.00ms" in text
        assert "Apply 3.00μs" in text
        assert "Baker tz1baker" in text
