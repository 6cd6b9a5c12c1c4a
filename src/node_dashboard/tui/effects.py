"""Effect chain.

Effects run after every reducer, read the committed state, and either hand work to a
service or dispatch follow-up actions. Several effects may react to the same action;
a new head, for instance, refreshes both endorsement rights and baking statistics.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .actions import (
    RECEIVED_BY_TARGET,
    ActionKind,
    ActionWithMeta,
    ApplicationStatisticsGet,
    BakingRightsGet,
    BestRemoteLevelChanged,
    CurrentHeadHeaderChanged,
    CurrentHeadMetadataChanged,
    CycleChanged,
    DrawScreenFailure,
    DrawScreenSuccess,
    EndorsementsRightsGet,
    EndorsementsRightsWithTimeGet,
    OperationsStatisticsGet,
    PerPeerBlockStatisticsGet,
    RpcRequest,
    RpcRequestFailed,
)
from .exceptions import ChannelError, TerminalError
from .services.rpc_service import RpcCall, RpcTarget
from .state import ActivePage, State
from .views.dashboard import render_dashboard

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)

# Get actions without a query string
_PLAIN_REQUESTS = {
    ActionKind.CURRENT_HEAD_HEADER_GET: RpcTarget.CURRENT_HEAD_HEADER,
    ActionKind.CURRENT_HEAD_METADATA_GET: RpcTarget.CURRENT_HEAD_METADATA,
    ActionKind.BEST_REMOTE_LEVEL_GET: RpcTarget.BEST_REMOTE_LEVEL,
    ActionKind.NETWORK_CONSTANTS_GET: RpcTarget.NETWORK_CONSTANTS,
    ActionKind.ENDORSEMENTS_STATUSES_GET: RpcTarget.ENDORSEMENTS_STATUS,
    ActionKind.MEMPOOL_ENDORSEMENT_STATS_GET: RpcTarget.MEMPOOL_ENDORSEMENT_STATS,
    ActionKind.OPERATIONS_STATISTICS_GET: RpcTarget.OPERATIONS_STATS,
}


def request_for(state: State, meta: ActionWithMeta) -> RpcRequest | None:
    """The RPC request a Get action stands for, None for any other action."""
    action = meta.action
    kind = meta.kind
    if kind in _PLAIN_REQUESTS:
        return RpcRequest(target=_PLAIN_REQUESTS[kind])
    if kind is ActionKind.ENDORSEMENTS_RIGHTS_GET:
        return RpcRequest(
            target=RpcTarget.ENDORSEMENT_RIGHTS,
            query=f"?level={action.level}&block={action.block}",
        )
    if kind is ActionKind.ENDORSEMENTS_RIGHTS_WITH_TIME_GET:
        return RpcRequest(
            target=RpcTarget.ENDORSEMENT_RIGHTS_WITH_TIME,
            query=f"?delegate={state.baker_address}&cycle={action.cycle}",
        )
    if kind is ActionKind.BAKING_RIGHTS_GET:
        return RpcRequest(
            target=RpcTarget.BAKING_RIGHTS,
            query=f"?delegate={state.baker_address}&cycle={action.cycle}",
        )
    if kind is ActionKind.APPLICATION_STATISTICS_GET:
        return RpcRequest(target=RpcTarget.APPLICATION_STATISTICS, query=f"?level={action.level}")
    if kind is ActionKind.PER_PEER_BLOCK_STATISTICS_GET:
        return RpcRequest(
            target=RpcTarget.PER_PEER_BLOCK_STATISTICS, query=f"?level={action.level}"
        )
    return None


def tui_effects(store: Store, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    if kind is ActionKind.DRAW_SCREEN:
        try:
            width = store.service.tui.draw(render_dashboard(store.state))
        except TerminalError as err:
            logger.error(f"Failed to draw screen: {err}")
            store.dispatch(DrawScreenFailure(error=str(err)))
        else:
            store.dispatch(DrawScreenSuccess(screen_width=width))
    elif kind is ActionKind.TERMINAL_RESIZED:
        store.service.tui.resize(action.width, action.height)
    elif kind is ActionKind.SHUTDOWN:
        store.service.tui.restore()


def rpc_effects(store: Store, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind

    if kind is ActionKind.RPC_REQUEST:
        call = RpcCall(target=action.target, query=action.query, call_id=meta.id)
        try:
            store.service.rpc.request(call)
        except ChannelError as err:
            logger.warning(
                f"Dropping RPC request: {err}",
                extra={"extra_context": {"target": action.target.value, "call_id": meta.id}},
            )
            store.dispatch(
                RpcRequestFailed(target=action.target, reason=str(err), call_id=meta.id)
            )
    elif kind is ActionKind.RPC_RESPONSE:
        response = action.response
        received = RECEIVED_BY_TARGET[response.target]
        store.dispatch(received(data=response.payload, raw=response.raw))
    else:
        request = request_for(store.state, meta)
        if request is not None:
            store.dispatch(request)


def synchronization_effects(store: Store, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind
    sync = store.state.synchronization

    if kind is ActionKind.CURRENT_HEAD_HEADER_RECEIVED:
        header = action.data
        if header.level > sync.current_head_level:
            store.dispatch(CurrentHeadHeaderChanged(header=header))
        # metadata carries the exact cycle once it is known
        if sync.current_head_metadata is None:
            blocks_per_cycle = sync.network_constants.blocks_per_cycle or 4096
            store.dispatch(CycleChanged(new_cycle=header.level // blocks_per_cycle))
    elif kind is ActionKind.CURRENT_HEAD_METADATA_RECEIVED:
        store.dispatch(CurrentHeadMetadataChanged(metadata=action.data))
    elif kind is ActionKind.CURRENT_HEAD_METADATA_CHANGED:
        store.dispatch(CycleChanged(new_cycle=action.metadata.cycle))
    elif kind is ActionKind.BEST_REMOTE_LEVEL_RECEIVED:
        store.dispatch(BestRemoteLevelChanged(level=action.data))


def endorsements_effects(store: Store, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind

    if kind is ActionKind.CURRENT_HEAD_HEADER_CHANGED:
        store.dispatch(EndorsementsRightsGet(level=action.header.level, block=action.header.hash))
    elif kind is ActionKind.CYCLE_CHANGED:
        store.dispatch(EndorsementsRightsWithTimeGet(cycle=action.new_cycle))


def baking_effects(store: Store, meta: ActionWithMeta) -> None:
    action = meta.action
    kind = meta.kind

    if kind is ActionKind.CURRENT_HEAD_HEADER_CHANGED:
        store.dispatch(ApplicationStatisticsGet(level=action.header.level))
        store.dispatch(PerPeerBlockStatisticsGet(level=action.header.level))
    elif kind is ActionKind.CYCLE_CHANGED:
        store.dispatch(BakingRightsGet(cycle=action.new_cycle))


def operations_effects(store: Store, meta: ActionWithMeta) -> None:
    if meta.kind is ActionKind.CHANGE_SCREEN and meta.action.screen is ActivePage.STATISTICS:
        store.dispatch(OperationsStatisticsGet())


EFFECTS = (
    tui_effects,
    rpc_effects,
    synchronization_effects,
    endorsements_effects,
    baking_effects,
    operations_effects,
)
