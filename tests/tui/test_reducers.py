"""Tests for the reducer chain."""

from __future__ import annotations

from node_dashboard.tui.actions import (
    Action,
    ActionWithMeta,
    ApplicationStatisticsReceived,
    BakingRightsReceived,
    ChangeScreen,
    CurrentHeadHeaderChanged,
    CurrentHeadHeaderReceived,
    DrawScreenFailure,
    DrawScreenSuccess,
    EndorsementsRightsReceived,
    EndorsementsRightsWithTimeReceived,
    EndorsementsStatusesReceived,
    OperationsStatisticsReceived,
    PerPeerBlockStatisticsReceived,
    RpcRequest,
    RpcRequestFailed,
    RpcResponse,
    Shutdown,
    TerminalResized,
    TuiDeltaToggleKeyPushed,
    TuiDownKeyPushed,
    TuiRightKeyPushed,
    TuiSortKeyPushed,
    TuiWidgetSelectionKeyPushed,
    WebsocketMessageReceived,
)
from node_dashboard.tui.extended_table import SortOrder
from node_dashboard.tui.models import (
    BakingRights,
    BlockApplicationStatistics,
    CurrentHeadHeader,
    EndorsementRightsWithTime,
    EndorsementStatus,
    OperationNodeStats,
    OperationStats,
    PerPeerBlockStatistics,
    WebsocketMessage,
)
from node_dashboard.tui.reducers import (
    MAX_TRACKED_BLOCKS,
    REDUCERS,
    _bounded_put,
)
from node_dashboard.tui.services import rpc_service as rpc
from node_dashboard.tui.state import ActivePage, ActiveWidget, RpcStatus, State
from node_dashboard.tui.tables import EndorsementState

HEADER = CurrentHeadHeader(level=100, hash="BLhead", timestamp="1970-01-01T00:00:01Z")


def reduce(state: State, action: Action, action_id: int = 0) -> State:
    """Run every reducer over one action, the way the store does."""
    meta = ActionWithMeta(id=action_id, timestamp=0, depth=0, action=action)
    for reducer in REDUCERS:
        reducer(state, meta)
    return state


class TestTuiReducer:
    """Tests for navigation and drawing state."""

    def test_shutdown_sets_flag(self) -> None:
        """Shutdown marks the loop for exit."""
        assert reduce(State(), Shutdown()).ui.shutdown_requested is True

    def test_change_screen_focuses_first_widget(self) -> None:
        """Switching pages focuses the page's first table."""
        state = reduce(State(), ChangeScreen(screen=ActivePage.STATISTICS))

        assert state.ui.active_page is ActivePage.STATISTICS
        assert state.ui.active_widget is ActiveWidget.STATISTICS_MAIN

    def test_widget_selection_cycles_within_page(self) -> None:
        """Tab moves between the statistics tables and wraps around."""
        state = reduce(State(), ChangeScreen(screen=ActivePage.STATISTICS))

        reduce(state, TuiWidgetSelectionKeyPushed())
        assert state.ui.active_widget is ActiveWidget.STATISTICS_DETAILS
        reduce(state, TuiWidgetSelectionKeyPushed())
        assert state.ui.active_widget is ActiveWidget.STATISTICS_MAIN

    def test_widget_selection_single_table_page(self) -> None:
        """A page with one table keeps it focused."""
        state = reduce(State(), TuiWidgetSelectionKeyPushed())
        assert state.ui.active_widget is ActiveWidget.PEER_TABLE

    def test_draw_success_lays_out_tables_on_width_change(self) -> None:
        """A new screen width re-lays out every table inside the frame border."""
        state = reduce(State(), DrawScreenSuccess(screen_width=80))

        assert state.ui.screen_width == 80
        assert state.ui.frames_drawn == 1
        assert state.endorsements.table.width == 78
        assert state.operations.main_table.width == 78

    def test_draw_success_same_width_keeps_layout(self) -> None:
        """Redrawing at the same width only counts the frame."""
        state = reduce(State(), DrawScreenSuccess(screen_width=80))
        state.endorsements.table.width = 5

        reduce(state, DrawScreenSuccess(screen_width=80))

        assert state.ui.frames_drawn == 2
        assert state.endorsements.table.width == 5

    def test_draw_failure_keeps_error_until_next_success(self) -> None:
        """The last draw error is cleared by a successful frame."""
        state = reduce(State(), DrawScreenFailure(error="broken pipe"))
        assert state.ui.last_draw_error == "broken pipe"

        reduce(state, DrawScreenSuccess(screen_width=80))
        assert state.ui.last_draw_error is None

    def test_terminal_resized_records_size(self) -> None:
        """The new size is kept; table layout waits for the next frame."""
        state = reduce(State(), TerminalResized(width=100, height=30))

        assert state.ui.terminal_size == (100, 30)
        assert state.ui.screen_width == 0

    def test_keys_move_focused_table_cursor(self) -> None:
        """Right and sort keys act on the focused table only."""
        state = reduce(State(), ChangeScreen(screen=ActivePage.ENDORSEMENTS))

        reduce(state, TuiRightKeyPushed())
        reduce(state, TuiSortKeyPushed())

        table = state.endorsements.table
        assert table.selected == 1
        assert table.sorted_by == 1
        assert table.sort_order is SortOrder.ASCENDING
        assert state.baking.table.selected == 0

    def test_delta_toggle_flips(self) -> None:
        """The delta key toggles between absolute and delta columns."""
        state = reduce(State(), TuiDeltaToggleKeyPushed())
        assert state.ui.delta_toggle is True
        reduce(state, TuiDeltaToggleKeyPushed())
        assert state.ui.delta_toggle is False


class TestRpcReducer:
    """Tests for request bookkeeping."""

    def _response(self, call_id: int) -> RpcResponse:
        return RpcResponse(
            response=rpc.RpcResponse(
                target=rpc.RpcTarget.BEST_REMOTE_LEVEL, call_id=call_id, payload=5, raw=5
            )
        )

    def test_request_marks_pending_with_dispatch_id(self) -> None:
        """The call id of a request is its action id."""
        state = reduce(State(), RpcRequest(target=rpc.RpcTarget.BEST_REMOTE_LEVEL), action_id=7)

        assert state.rpc.pending == {rpc.RpcTarget.BEST_REMOTE_LEVEL: 7}
        assert state.rpc.status[rpc.RpcTarget.BEST_REMOTE_LEVEL] is RpcStatus.PENDING

    def test_matching_response_clears_pending(self) -> None:
        """An answer to the outstanding call completes it."""
        state = reduce(State(), RpcRequest(target=rpc.RpcTarget.BEST_REMOTE_LEVEL), action_id=7)
        reduce(state, self._response(7))

        assert state.rpc.pending == {}
        assert state.rpc.status[rpc.RpcTarget.BEST_REMOTE_LEVEL] is RpcStatus.SUCCESS
        assert state.rpc.successes == 1

    def test_stale_response_keeps_newer_call_pending(self) -> None:
        """An answer to an older call does not complete the newer one."""
        state = reduce(State(), RpcRequest(target=rpc.RpcTarget.BEST_REMOTE_LEVEL), action_id=9)
        reduce(state, self._response(3))

        assert state.rpc.pending == {rpc.RpcTarget.BEST_REMOTE_LEVEL: 9}

    def test_failure_records_error(self) -> None:
        """A failed request is released and its reason kept for the footer."""
        target = rpc.RpcTarget.CURRENT_HEAD_HEADER
        state = reduce(State(), RpcRequest(target=target), action_id=2)
        reduce(state, RpcRequestFailed(target=target, reason="HTTP 500", call_id=2))

        assert state.rpc.pending == {}
        assert state.rpc.last_error == (target, "HTTP 500")
        assert state.rpc.last_errors[target] == "HTTP 500"
        assert state.rpc.failures == 1

    def test_success_clears_error_of_same_target(self) -> None:
        """A later success for the failing target clears the footer error."""
        target = rpc.RpcTarget.BEST_REMOTE_LEVEL
        state = reduce(State(), RpcRequestFailed(target=target, reason="timeout"))
        reduce(state, self._response(1))

        assert state.rpc.last_error is None
        assert target not in state.rpc.last_errors


class TestSynchronizationReducer:
    """Tests for head, cycle and WebSocket state."""

    def test_header_received_stores_header_only(self) -> None:
        """A received header is stored but not announced as changed."""
        state = reduce(State(), CurrentHeadHeaderReceived(data=HEADER))

        assert state.synchronization.current_head_header == HEADER
        assert state.synchronization.current_head_level == 0

    def test_header_changed_updates_level(self) -> None:
        """A changed header advances the announced level."""
        state = reduce(State(), CurrentHeadHeaderChanged(header=HEADER))
        assert state.synchronization.current_head_level == 100

    def test_peers_message_fills_peer_table(self) -> None:
        """Peer metrics replace the peer table content."""
        message = WebsocketMessage.from_dict(
            {
                "type": "peersMetrics",
                "payload": [
                    {"id": "a", "ipAddress": "1.1.1.1", "transferredBytes": 10},
                    {"id": "b", "ipAddress": "2.2.2.2", "transferredBytes": 20},
                ],
            }
        )
        state = reduce(State(), WebsocketMessageReceived(messages=(message,)))

        assert [row.ip_address for row in state.synchronization.peers_table.content] == [
            "1.1.1.1",
            "2.2.2.2",
        ]

    def test_chain_status_message_sets_cycles(self) -> None:
        """Chain status replaces the cycle summary."""
        message = WebsocketMessage.from_dict(
            {
                "type": "chainStatus",
                "payload": {
                    "chain": [{"id": 0, "headers": 10, "operations": 10, "applications": 4}]
                },
            }
        )
        state = reduce(State(), WebsocketMessageReceived(messages=(message,)))

        assert len(state.synchronization.cycle_data) == 1
        assert state.synchronization.cycle_data[0].applications == 4


class TestEndorsementsReducer:
    """Tests for endorsement table maintenance."""

    def test_rights_and_statuses_build_table(self) -> None:
        """Rights and statuses combine into one row per delegate."""
        state = reduce(State(), CurrentHeadHeaderChanged(header=HEADER))
        reduce(state, EndorsementsRightsReceived(data={"tz1a": (0,), "tz1b": (1,)}))
        reduce(
            state,
            EndorsementsStatusesReceived(
                data={"oph": EndorsementStatus(slot=0, state="applied", applied_time=5)}
            ),
        )

        rows = {row.baker: row for row in state.endorsements.table.content}
        assert rows["tz1a"].state is EndorsementState.APPLIED
        assert rows["tz1b"].state is EndorsementState.MISSING
        assert state.endorsements.summary[EndorsementState.MISSING] == 1

    def test_new_head_resets_rights(self) -> None:
        """A new head clears the previous block's endorsements."""
        state = reduce(State(), EndorsementsRightsReceived(data={"tz1a": (0,)}))
        reduce(state, CurrentHeadHeaderChanged(header=HEADER))

        assert state.endorsements.rights == {}
        assert state.endorsements.table.content == []

    def test_rights_with_time_filtered_by_baker(self) -> None:
        """Only the configured baker's rights are kept."""
        state = State(baker_address="tz1me")
        reduce(
            state,
            EndorsementsRightsWithTimeReceived(
                data=(
                    EndorsementRightsWithTime(level=10, delegate="tz1me"),
                    EndorsementRightsWithTime(level=11, delegate="tz1other"),
                )
            ),
        )

        assert list(state.endorsements.rights_with_time) == [10]


class TestBakingReducer:
    """Tests for per-peer propagation and baking rights."""

    def test_per_peer_rows_relative_to_application_timestamp(self) -> None:
        """Block timestamps from application statistics anchor the peer rows."""
        state = State()
        reduce(
            state,
            ApplicationStatisticsReceived(
                data=(
                    BlockApplicationStatistics(
                        block_hash="B1", block_timestamp=1_000, receive_timestamp=1_500
                    ),
                )
            ),
        )
        reduce(
            state,
            PerPeerBlockStatisticsReceived(
                data=(
                    PerPeerBlockStatistics(
                        address="p", block_hash="B1", node_id="n", received_time=1_400
                    ),
                )
            ),
        )

        assert state.baking.table.content[0].received == 400
        assert "B1" in state.baking.per_peer_statistics

    def test_empty_per_peer_answer_is_ignored(self) -> None:
        """An empty answer leaves the table as it was."""
        state = reduce(State(), PerPeerBlockStatisticsReceived(data=()))
        assert state.baking.per_peer_statistics == {}

    def test_baking_rights_filtered_by_baker(self) -> None:
        """Rights of other delegates are dropped."""
        state = State(baker_address="tz1me")
        reduce(
            state,
            BakingRightsReceived(
                data=(
                    BakingRights(level=5, delegate="tz1me"),
                    BakingRights(level=6, delegate="tz1other"),
                )
            ),
        )

        assert list(state.baking.rights) == [5]

    def test_bounded_put_evicts_oldest(self) -> None:
        """Only the most recent blocks are kept."""
        mapping: dict = {}
        for index in range(MAX_TRACKED_BLOCKS + 3):
            _bounded_put(mapping, index, index)

        assert len(mapping) == MAX_TRACKED_BLOCKS
        assert next(iter(mapping)) == 3


class TestOperationsReducer:
    """Tests for the statistics page."""

    def _stats(self) -> dict[str, OperationStats]:
        return {
            "oo1": OperationStats(nodes={"peerA": OperationNodeStats(received=(10,))}),
            "oo2": OperationStats(
                nodes={
                    "peerA": OperationNodeStats(received=(20,)),
                    "peerB": OperationNodeStats(received=(30,)),
                }
            ),
        }

    def test_statistics_fill_main_table(self) -> None:
        """Every operation becomes a row; nothing is selected yet."""
        state = reduce(State(), OperationsStatisticsReceived(data=self._stats()))

        assert [row.hash for row in state.operations.main_table.content] == ["oo1", "oo2"]
        assert state.operations.selected_hash is None
        assert state.operations.details_table.content == []

    def test_moving_cursor_updates_details(self) -> None:
        """Selecting an operation shows its per-peer details."""
        state = reduce(State(), ChangeScreen(screen=ActivePage.STATISTICS))
        reduce(state, OperationsStatisticsReceived(data=self._stats()))

        reduce(state, TuiDownKeyPushed())
        assert state.operations.selected_hash == "oo1"
        assert len(state.operations.details_table.content) == 1

        reduce(state, TuiDownKeyPushed())
        assert state.operations.selected_hash == "oo2"
        assert len(state.operations.details_table.content) == 2

    def test_details_not_synced_when_details_focused(self) -> None:
        """Moving inside the details table keeps the selected operation."""
        state = reduce(State(), ChangeScreen(screen=ActivePage.STATISTICS))
        reduce(state, OperationsStatisticsReceived(data=self._stats()))
        reduce(state, TuiWidgetSelectionKeyPushed())

        reduce(state, TuiDownKeyPushed())

        assert state.operations.selected_hash is None
