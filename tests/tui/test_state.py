"""Unit tests for dashboard state."""

from __future__ import annotations

from node_dashboard.tui.models import CurrentHeadHeader
from node_dashboard.tui.state import PAGE_WIDGETS, ActivePage, ActiveWidget, State


class TestActivePage:
    """Tests for ActivePage enum."""

    def test_hotkeys_follow_tab_order(self) -> None:
        """Pages map to F1-F4 in declaration order."""
        assert [page.hotkey for page in ActivePage] == ["F1", "F2", "F3", "F4"]

    def test_every_page_has_widgets(self) -> None:
        """Each page has at least one focusable table."""
        for page in ActivePage:
            assert PAGE_WIDGETS[page]


class TestState:
    """Tests for the aggregate root."""

    def test_initial_values(self) -> None:
        """A new state starts on the synchronization page with nothing pending."""
        state = State()

        assert state.ui.active_page is ActivePage.SYNCHRONIZATION
        assert state.ui.active_widget is ActiveWidget.PEER_TABLE
        assert state.synchronization.current_cycle == -1
        assert state.rpc.pending == {}
        assert state.current_level == 0

    def test_init_dict_round_trip(self) -> None:
        """The config-derived part survives the action log form."""
        state = State(baker_address="tz1me")
        assert State.from_init(state.init_dict()).baker_address == "tz1me"
        assert State.from_init({}).baker_address is None

    def test_table_for_each_widget(self) -> None:
        """Every widget resolves to a distinct table."""
        state = State()
        tables = state.all_tables()

        assert len(tables) == len(ActiveWidget)
        assert len({id(table) for table in tables}) == len(tables)
        assert state.table_for(ActiveWidget.BAKING_TABLE) is state.baking.table

    def test_focused_table(self) -> None:
        """The focused table follows the active widget."""
        state = State()
        state.ui.active_widget = ActiveWidget.STATISTICS_DETAILS

        assert state.focused_table() is state.operations.details_table

    def test_current_level(self) -> None:
        """The current level is read from the latest header."""
        state = State()
        state.synchronization.current_head_header = CurrentHeadHeader(level=12)
        assert state.current_level == 12
