"""Reducer chain.

Each reducer owns one sub-state and ignores actions it does not handle. They run
in REDUCERS order; ``tui_reducer`` comes first so the delta toggle and the row
cursor it updates are visible to the domain reducers within the same action, and
``synchronization_reducer`` precedes the endorsement and baking reducers, which read
the block timestamp of the current head.
"""

from __future__ import annotations

import logging

from .actions import ActionKind, ActionWithMeta
from .models import WebsocketMessageType
from .state import PAGE_WIDGETS, ActiveWidget, RpcStatus, State
from .tables import (
    BakingRow,
    PeerRow,
    build_detail_rows,
    build_endorsement_rows,
    build_operation_rows,
    summarize_endorsements,
)

logger = logging.getLogger(__name__)

# Panel border around every table
FRAME_BORDER = 2

# Per-block statistics kept for recent blocks only
MAX_TRACKED_BLOCKS = 64


def _bounded_put(
    mapping: dict, key: object, value: object, limit: int = MAX_TRACKED_BLOCKS
) -> None:
    mapping.pop(key, None)
    mapping[key] = value
    while len(mapping) > limit:
        del mapping[next(iter(mapping))]


def tui_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    ui = state.ui

    if kind is ActionKind.SHUTDOWN:
        ui.shutdown_requested = True
    elif kind is ActionKind.CHANGE_SCREEN:
        ui.active_page = action.screen
        ui.active_widget = PAGE_WIDGETS[action.screen][0]
    elif kind is ActionKind.DRAW_SCREEN_SUCCESS:
        ui.frames_drawn += 1
        ui.last_draw_error = None
        if action.screen_width != ui.screen_width:
            ui.screen_width = action.screen_width
            for table in state.all_tables():
                table.renderable_constraints(max(action.screen_width - FRAME_BORDER, 0))
    elif kind is ActionKind.DRAW_SCREEN_FAILURE:
        ui.last_draw_error = action.error
    elif kind is ActionKind.TERMINAL_RESIZED:
        ui.terminal_size = (action.width, action.height)
    elif kind is ActionKind.TUI_RIGHT_KEY_PUSHED:
        state.focused_table().next()
    elif kind is ActionKind.TUI_LEFT_KEY_PUSHED:
        state.focused_table().previous()
    elif kind is ActionKind.TUI_DOWN_KEY_PUSHED:
        state.focused_table().select_next_row()
    elif kind is ActionKind.TUI_UP_KEY_PUSHED:
        state.focused_table().select_previous_row()
    elif kind is ActionKind.TUI_SORT_KEY_PUSHED:
        state.focused_table().cycle_sort(ui.delta_toggle)
    elif kind is ActionKind.TUI_DELTA_TOGGLE_KEY_PUSHED:
        ui.delta_toggle = not ui.delta_toggle
        for table in state.all_tables():
            table.sort_content(ui.delta_toggle)
    elif kind is ActionKind.TUI_WIDGET_SELECTION_KEY_PUSHED:
        widgets = PAGE_WIDGETS[ui.active_page]
        if ui.active_widget in widgets:
            index = (widgets.index(ui.active_widget) + 1) % len(widgets)
        else:
            index = 0
        ui.active_widget = widgets[index]


def rpc_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    rpc = state.rpc

    if kind is ActionKind.RPC_REQUEST:
        rpc.status[action.target] = RpcStatus.PENDING
        rpc.pending[action.target] = meta.id
    elif kind is ActionKind.RPC_RESPONSE:
        response = action.response
        # an answer to an older call leaves the newer one outstanding
        if rpc.pending.get(response.target) == response.call_id:
            del rpc.pending[response.target]
        rpc.status[response.target] = RpcStatus.SUCCESS
        rpc.last_errors.pop(response.target, None)
        if rpc.last_error is not None and rpc.last_error[0] is response.target:
            rpc.last_error = None
        rpc.successes += 1
    elif kind is ActionKind.RPC_REQUEST_FAILED:
        if action.call_id is None or rpc.pending.get(action.target) == action.call_id:
            rpc.pending.pop(action.target, None)
        rpc.status[action.target] = RpcStatus.FAILED
        rpc.last_errors[action.target] = action.reason
        rpc.last_error = (action.target, action.reason)
        rpc.failures += 1


def synchronization_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    sync = state.synchronization

    if kind is ActionKind.WEBSOCKET_MESSAGE_RECEIVED:
        for message in action.messages:
            if message.type is WebsocketMessageType.INCOMING_TRANSFER:
                sync.incoming_transfer = message.payload
            elif message.type is WebsocketMessageType.BLOCK_STATUS:
                sync.block_metrics = message.payload
            elif message.type is WebsocketMessageType.BLOCK_APPLICATION_STATUS:
                sync.application_status = message.payload
            elif message.type is WebsocketMessageType.CHAIN_STATUS:
                sync.cycle_data = message.payload
            elif message.type is WebsocketMessageType.PEERS_METRICS:
                sync.peers_table.set_content(
                    [PeerRow.from_metrics(peer) for peer in message.payload],
                    state.ui.delta_toggle,
                )
    elif kind is ActionKind.CURRENT_HEAD_HEADER_RECEIVED:
        sync.current_head_header = action.data
    elif kind is ActionKind.CURRENT_HEAD_HEADER_CHANGED:
        sync.current_head_header = action.header
        sync.current_head_level = action.header.level
    elif kind is ActionKind.CYCLE_CHANGED:
        sync.current_cycle = action.new_cycle
    elif kind is ActionKind.CURRENT_HEAD_METADATA_CHANGED:
        sync.current_head_metadata = action.metadata
    elif kind is ActionKind.BEST_REMOTE_LEVEL_CHANGED:
        sync.best_remote_level = action.level
    elif kind is ActionKind.NETWORK_CONSTANTS_RECEIVED:
        sync.network_constants = action.data


def _rebuild_endorsements(state: State) -> None:
    endorsements = state.endorsements
    block_timestamp = state.synchronization.current_head_header.timestamp_nanos or 0
    rows = build_endorsement_rows(endorsements.rights, endorsements.statuses, block_timestamp)
    endorsements.table.set_content(rows, state.ui.delta_toggle)
    endorsements.summary = summarize_endorsements(rows)


def endorsements_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    endorsements = state.endorsements

    if kind is ActionKind.CURRENT_HEAD_HEADER_CHANGED:
        endorsements.rights = {}
        endorsements.statuses = {}
        _rebuild_endorsements(state)
    elif kind is ActionKind.ENDORSEMENTS_RIGHTS_RECEIVED:
        endorsements.rights = action.data
        _rebuild_endorsements(state)
    elif kind is ActionKind.ENDORSEMENTS_STATUSES_RECEIVED:
        endorsements.statuses = action.data
        _rebuild_endorsements(state)
    elif kind is ActionKind.ENDORSEMENTS_RIGHTS_WITH_TIME_RECEIVED:
        endorsements.rights_with_time = {
            rights.level: rights
            for rights in action.data
            if not rights.delegate or rights.delegate == state.baker_address
        }
    elif kind is ActionKind.MEMPOOL_ENDORSEMENT_STATS_RECEIVED:
        endorsements.mempool_stats = action.data


def _block_timestamp(state: State, block_hash: str) -> int:
    statistics = state.baking.application_statistics.get(block_hash)
    if statistics is not None:
        return statistics.block_timestamp
    header = state.synchronization.current_head_header
    if header.hash == block_hash:
        return header.timestamp_nanos or 0
    return 0


def baking_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    baking = state.baking

    if kind is ActionKind.CURRENT_HEAD_HEADER_CHANGED:
        baking.table.clear()
    elif kind is ActionKind.APPLICATION_STATISTICS_RECEIVED:
        for statistics in action.data:
            _bounded_put(baking.application_statistics, statistics.block_hash, statistics)
    elif kind is ActionKind.PER_PEER_BLOCK_STATISTICS_RECEIVED:
        if not action.data:
            return
        block_hash = action.data[0].block_hash
        _bounded_put(baking.per_peer_statistics, block_hash, action.data)
        block_timestamp = _block_timestamp(state, block_hash)
        baking.table.set_content(
            [BakingRow.from_statistics(peer, block_timestamp) for peer in action.data],
            state.ui.delta_toggle,
        )
    elif kind is ActionKind.BAKING_RIGHTS_RECEIVED:
        baking.rights = {
            rights.level: rights
            for rights in action.data
            if not rights.delegate or rights.delegate == state.baker_address
        }


def _sync_details(state: State, force: bool = False) -> None:
    operations = state.operations
    row = operations.main_table.selected_row
    selected_hash = row.hash if row is not None else None
    if not force and selected_hash == operations.selected_hash:
        return
    operations.selected_hash = selected_hash
    stats = operations.stats.get(selected_hash) if selected_hash else None
    operations.details_table.set_content(build_detail_rows(stats), state.ui.delta_toggle)


def operations_reducer(state: State, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    operations = state.operations

    if kind is ActionKind.OPERATIONS_STATISTICS_RECEIVED:
        operations.stats = action.data
        operations.main_table.set_content(build_operation_rows(action.data), state.ui.delta_toggle)
        _sync_details(state, force=True)
    elif kind in (
        ActionKind.TUI_UP_KEY_PUSHED,
        ActionKind.TUI_DOWN_KEY_PUSHED,
        ActionKind.TUI_SORT_KEY_PUSHED,
    ):
        if state.ui.active_widget is ActiveWidget.STATISTICS_MAIN:
            _sync_details(state)


REDUCERS = (
    tui_reducer,
    rpc_reducer,
    synchronization_reducer,
    endorsements_reducer,
    baking_reducer,
    operations_reducer,
)
