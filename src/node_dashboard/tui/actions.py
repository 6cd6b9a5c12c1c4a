"""Action catalog of the dashboard automaton.

Every event is a frozen dataclass with a ``kind`` tag, an enabling condition evaluated
against the current State, and a JSON form used by the action log. Reducers and
effects branch on ``action.kind``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from .models import CurrentHeadHeader, CurrentHeadMetadata, WebsocketMessage
from .services import rpc_service as rpc
from .state import ActivePage

if TYPE_CHECKING:
    from .state import State


class ActionKind(Enum):
    INIT = "Init"
    SHUTDOWN = "Shutdown"

    RPC_REQUEST = "RpcRequest"
    RPC_RESPONSE = "RpcResponse"
    RPC_REQUEST_FAILED = "RpcRequestFailed"
    WEBSOCKET_MESSAGE_RECEIVED = "WebsocketMessageReceived"

    CURRENT_HEAD_HEADER_GET = "CurrentHeadHeaderGet"
    CURRENT_HEAD_HEADER_RECEIVED = "CurrentHeadHeaderReceived"
    CURRENT_HEAD_HEADER_CHANGED = "CurrentHeadHeaderChanged"
    CYCLE_CHANGED = "CycleChanged"
    CURRENT_HEAD_METADATA_GET = "CurrentHeadMetadataGet"
    CURRENT_HEAD_METADATA_RECEIVED = "CurrentHeadMetadataReceived"
    CURRENT_HEAD_METADATA_CHANGED = "CurrentHeadMetadataChanged"
    BEST_REMOTE_LEVEL_GET = "BestRemoteLevelGet"
    BEST_REMOTE_LEVEL_RECEIVED = "BestRemoteLevelReceived"
    BEST_REMOTE_LEVEL_CHANGED = "BestRemoteLevelChanged"
    NETWORK_CONSTANTS_GET = "NetworkConstantsGet"
    NETWORK_CONSTANTS_RECEIVED = "NetworkConstantsReceived"

    ENDORSEMENTS_RIGHTS_GET = "EndorsementsRightsGet"
    ENDORSEMENTS_RIGHTS_RECEIVED = "EndorsementsRightsReceived"
    ENDORSEMENTS_STATUSES_GET = "EndorsementsStatusesGet"
    ENDORSEMENTS_STATUSES_RECEIVED = "EndorsementsStatusesReceived"
    ENDORSEMENTS_RIGHTS_WITH_TIME_GET = "EndorsementsRightsWithTimeGet"
    ENDORSEMENTS_RIGHTS_WITH_TIME_RECEIVED = "EndorsementsRightsWithTimeReceived"
    MEMPOOL_ENDORSEMENT_STATS_GET = "MempoolEndorsementStatsGet"
    MEMPOOL_ENDORSEMENT_STATS_RECEIVED = "MempoolEndorsementStatsReceived"

    BAKING_RIGHTS_GET = "BakingRightsGet"
    BAKING_RIGHTS_RECEIVED = "BakingRightsReceived"
    APPLICATION_STATISTICS_GET = "ApplicationStatisticsGet"
    APPLICATION_STATISTICS_RECEIVED = "ApplicationStatisticsReceived"
    PER_PEER_BLOCK_STATISTICS_GET = "PerPeerBlockStatisticsGet"
    PER_PEER_BLOCK_STATISTICS_RECEIVED = "PerPeerBlockStatisticsReceived"

    OPERATIONS_STATISTICS_GET = "OperationsStatisticsGet"
    OPERATIONS_STATISTICS_RECEIVED = "OperationsStatisticsReceived"

    CHANGE_SCREEN = "ChangeScreen"
    DRAW_SCREEN = "DrawScreen"
    DRAW_SCREEN_SUCCESS = "DrawScreenSuccess"
    DRAW_SCREEN_FAILURE = "DrawScreenFailure"
    TERMINAL_RESIZED = "TerminalResized"
    TUI_RIGHT_KEY_PUSHED = "TuiRightKeyPushed"
    TUI_LEFT_KEY_PUSHED = "TuiLeftKeyPushed"
    TUI_UP_KEY_PUSHED = "TuiUpKeyPushed"
    TUI_DOWN_KEY_PUSHED = "TuiDownKeyPushed"
    TUI_SORT_KEY_PUSHED = "TuiSortKeyPushed"
    TUI_DELTA_TOGGLE_KEY_PUSHED = "TuiDeltaToggleKeyPushed"
    TUI_WIDGET_SELECTION_KEY_PUSHED = "TuiWidgetSelectionKeyPushed"


_REGISTRY: dict[ActionKind, type[Action]] = {}


def _register(cls: type[Action]) -> type[Action]:
    _REGISTRY[cls.kind] = cls
    return cls


@dataclass(frozen=True)
class Action:
    """Base of every action; subclasses set ``kind`` and their payload fields."""

    kind: ClassVar[ActionKind]

    def is_enabled(self, state: State) -> bool:
        return True

    def payload(self) -> dict:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict) -> Action:
        return cls(**payload)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, **self.payload()}

    @staticmethod
    def from_dict(data: dict) -> Action:
        """Rebuild an action from its JSON form.

        Raises:
            ValueError: Unknown kind
            KeyError, TypeError: Payload does not match the kind
        """
        payload = dict(data)
        kind = ActionKind(payload.pop("kind"))
        return _REGISTRY[kind].from_payload(payload)


@dataclass(frozen=True)
class ActionWithMeta:
    """An action with its dispatch id, timestamp (unix nanoseconds) and recursion depth."""

    id: int
    timestamp: int
    depth: int
    action: Action

    @property
    def kind(self) -> ActionKind:
        return self.action.kind

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "depth": self.depth,
            "action": self.action.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ActionWithMeta:
        return cls(
            id=int(data["id"]),
            timestamp=int(data["timestamp"]),
            depth=int(data["depth"]),
            action=Action.from_dict(data["action"]),
        )


# Lifecycle


@_register
@dataclass(frozen=True)
class Init(Action):
    kind = ActionKind.INIT

    def is_enabled(self, state: State) -> bool:
        return False


@_register
@dataclass(frozen=True)
class Shutdown(Action):
    kind = ActionKind.SHUTDOWN


# RPC plumbing


@_register
@dataclass(frozen=True)
class RpcRequest(Action):
    """Ask the RPC worker for ``target``; the call id is the dispatch id of this action."""

    kind = ActionKind.RPC_REQUEST
    target: rpc.RpcTarget
    query: str = ""

    def is_enabled(self, state: State) -> bool:
        return self.target not in state.rpc.pending

    def payload(self) -> dict:
        return {"target": self.target.value, "query": self.query}

    @classmethod
    def from_payload(cls, payload: dict) -> RpcRequest:
        return cls(target=rpc.RpcTarget(payload["target"]), query=payload.get("query", ""))


@_register
@dataclass(frozen=True)
class RpcResponse(Action):
    kind = ActionKind.RPC_RESPONSE
    response: rpc.RpcResponse

    @property
    def target(self) -> rpc.RpcTarget:
        return self.response.target

    def payload(self) -> dict:
        return {
            "target": self.response.target.value,
            "call_id": self.response.call_id,
            "raw": self.response.raw,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> RpcResponse:
        response = rpc.RpcResponse.from_raw(
            rpc.RpcTarget(payload["target"]), int(payload["call_id"]), payload["raw"]
        )
        return cls(response=response)


@_register
@dataclass(frozen=True)
class RpcRequestFailed(Action):
    kind = ActionKind.RPC_REQUEST_FAILED
    target: rpc.RpcTarget
    reason: str
    call_id: int | None = None

    def payload(self) -> dict:
        return {"target": self.target.value, "reason": self.reason, "call_id": self.call_id}

    @classmethod
    def from_payload(cls, payload: dict) -> RpcRequestFailed:
        return cls(
            target=rpc.RpcTarget(payload["target"]),
            reason=payload["reason"],
            call_id=payload.get("call_id"),
        )


@_register
@dataclass(frozen=True)
class WebsocketMessageReceived(Action):
    kind = ActionKind.WEBSOCKET_MESSAGE_RECEIVED
    messages: tuple[WebsocketMessage, ...] = ()

    def is_enabled(self, state: State) -> bool:
        return bool(self.messages)

    def payload(self) -> dict:
        return {"messages": [message.raw for message in self.messages]}

    @classmethod
    def from_payload(cls, payload: dict) -> WebsocketMessageReceived:
        return cls(
            messages=tuple(WebsocketMessage.from_dict(item) for item in payload["messages"])
        )


@dataclass(frozen=True)
class RpcReceived(Action):
    """A decoded answer for one target; serialized as the raw JSON body."""

    target: ClassVar[rpc.RpcTarget]
    data: object
    raw: object = field(default=None, compare=False, repr=False)

    def payload(self) -> dict:
        return {"raw": self.raw}

    @classmethod
    def from_payload(cls, payload: dict) -> RpcReceived:
        return cls(data=rpc.decode_payload(cls.target, payload["raw"]), raw=payload["raw"])


# Current head and network


@_register
@dataclass(frozen=True)
class CurrentHeadHeaderGet(Action):
    kind = ActionKind.CURRENT_HEAD_HEADER_GET


@_register
@dataclass(frozen=True)
class CurrentHeadHeaderReceived(RpcReceived):
    kind = ActionKind.CURRENT_HEAD_HEADER_RECEIVED
    target = rpc.RpcTarget.CURRENT_HEAD_HEADER


@_register
@dataclass(frozen=True)
class CurrentHeadHeaderChanged(Action):
    kind = ActionKind.CURRENT_HEAD_HEADER_CHANGED
    header: CurrentHeadHeader

    def is_enabled(self, state: State) -> bool:
        return self.header.level > state.synchronization.current_head_level

    @classmethod
    def from_payload(cls, payload: dict) -> CurrentHeadHeaderChanged:
        return cls(header=CurrentHeadHeader(**payload["header"]))


@_register
@dataclass(frozen=True)
class CycleChanged(Action):
    kind = ActionKind.CYCLE_CHANGED
    new_cycle: int

    def is_enabled(self, state: State) -> bool:
        return self.new_cycle > state.synchronization.current_cycle


@_register
@dataclass(frozen=True)
class CurrentHeadMetadataGet(Action):
    kind = ActionKind.CURRENT_HEAD_METADATA_GET


@_register
@dataclass(frozen=True)
class CurrentHeadMetadataReceived(RpcReceived):
    kind = ActionKind.CURRENT_HEAD_METADATA_RECEIVED
    target = rpc.RpcTarget.CURRENT_HEAD_METADATA


@_register
@dataclass(frozen=True)
class CurrentHeadMetadataChanged(Action):
    kind = ActionKind.CURRENT_HEAD_METADATA_CHANGED
    metadata: CurrentHeadMetadata

    def is_enabled(self, state: State) -> bool:
        return self.metadata != state.synchronization.current_head_metadata

    @classmethod
    def from_payload(cls, payload: dict) -> CurrentHeadMetadataChanged:
        return cls(metadata=CurrentHeadMetadata(**payload["metadata"]))


@_register
@dataclass(frozen=True)
class BestRemoteLevelGet(Action):
    kind = ActionKind.BEST_REMOTE_LEVEL_GET


@_register
@dataclass(frozen=True)
class BestRemoteLevelReceived(RpcReceived):
    kind = ActionKind.BEST_REMOTE_LEVEL_RECEIVED
    target = rpc.RpcTarget.BEST_REMOTE_LEVEL


@_register
@dataclass(frozen=True)
class BestRemoteLevelChanged(Action):
    kind = ActionKind.BEST_REMOTE_LEVEL_CHANGED
    level: int | None

    def is_enabled(self, state: State) -> bool:
        return self.level != state.synchronization.best_remote_level


@_register
@dataclass(frozen=True)
class NetworkConstantsGet(Action):
    kind = ActionKind.NETWORK_CONSTANTS_GET


@_register
@dataclass(frozen=True)
class NetworkConstantsReceived(RpcReceived):
    kind = ActionKind.NETWORK_CONSTANTS_RECEIVED
    target = rpc.RpcTarget.NETWORK_CONSTANTS


# Endorsements


@_register
@dataclass(frozen=True)
class EndorsementsRightsGet(Action):
    kind = ActionKind.ENDORSEMENTS_RIGHTS_GET
    level: int
    block: str

    def is_enabled(self, state: State) -> bool:
        return self.level > 0 and bool(self.block)


@_register
@dataclass(frozen=True)
class EndorsementsRightsReceived(RpcReceived):
    kind = ActionKind.ENDORSEMENTS_RIGHTS_RECEIVED
    target = rpc.RpcTarget.ENDORSEMENT_RIGHTS


@_register
@dataclass(frozen=True)
class EndorsementsStatusesGet(Action):
    kind = ActionKind.ENDORSEMENTS_STATUSES_GET


@_register
@dataclass(frozen=True)
class EndorsementsStatusesReceived(RpcReceived):
    kind = ActionKind.ENDORSEMENTS_STATUSES_RECEIVED
    target = rpc.RpcTarget.ENDORSEMENTS_STATUS


@_register
@dataclass(frozen=True)
class EndorsementsRightsWithTimeGet(Action):
    kind = ActionKind.ENDORSEMENTS_RIGHTS_WITH_TIME_GET
    cycle: int

    def is_enabled(self, state: State) -> bool:
        return bool(state.baker_address) and self.cycle >= 0


@_register
@dataclass(frozen=True)
class EndorsementsRightsWithTimeReceived(RpcReceived):
    kind = ActionKind.ENDORSEMENTS_RIGHTS_WITH_TIME_RECEIVED
    target = rpc.RpcTarget.ENDORSEMENT_RIGHTS_WITH_TIME


@_register
@dataclass(frozen=True)
class MempoolEndorsementStatsGet(Action):
    kind = ActionKind.MEMPOOL_ENDORSEMENT_STATS_GET


@_register
@dataclass(frozen=True)
class MempoolEndorsementStatsReceived(RpcReceived):
    kind = ActionKind.MEMPOOL_ENDORSEMENT_STATS_RECEIVED
    target = rpc.RpcTarget.MEMPOOL_ENDORSEMENT_STATS


# Baking


@_register
@dataclass(frozen=True)
class BakingRightsGet(Action):
    kind = ActionKind.BAKING_RIGHTS_GET
    cycle: int

    def is_enabled(self, state: State) -> bool:
        return bool(state.baker_address) and self.cycle >= 0


@_register
@dataclass(frozen=True)
class BakingRightsReceived(RpcReceived):
    kind = ActionKind.BAKING_RIGHTS_RECEIVED
    target = rpc.RpcTarget.BAKING_RIGHTS


@_register
@dataclass(frozen=True)
class ApplicationStatisticsGet(Action):
    kind = ActionKind.APPLICATION_STATISTICS_GET
    level: int

    def is_enabled(self, state: State) -> bool:
        return self.level > 0


@_register
@dataclass(frozen=True)
class ApplicationStatisticsReceived(RpcReceived):
    kind = ActionKind.APPLICATION_STATISTICS_RECEIVED
    target = rpc.RpcTarget.APPLICATION_STATISTICS


@_register
@dataclass(frozen=True)
class PerPeerBlockStatisticsGet(Action):
    kind = ActionKind.PER_PEER_BLOCK_STATISTICS_GET
    level: int

    def is_enabled(self, state: State) -> bool:
        return self.level > 0


@_register
@dataclass(frozen=True)
class PerPeerBlockStatisticsReceived(RpcReceived):
    kind = ActionKind.PER_PEER_BLOCK_STATISTICS_RECEIVED
    target = rpc.RpcTarget.PER_PEER_BLOCK_STATISTICS


# Operations


@_register
@dataclass(frozen=True)
class OperationsStatisticsGet(Action):
    kind = ActionKind.OPERATIONS_STATISTICS_GET


@_register
@dataclass(frozen=True)
class OperationsStatisticsReceived(RpcReceived):
    kind = ActionKind.OPERATIONS_STATISTICS_RECEIVED
    target = rpc.RpcTarget.OPERATIONS_STATS


# Terminal


@_register
@dataclass(frozen=True)
class ChangeScreen(Action):
    kind = ActionKind.CHANGE_SCREEN
    screen: ActivePage

    def is_enabled(self, state: State) -> bool:
        return self.screen is not state.ui.active_page

    def payload(self) -> dict:
        return {"screen": self.screen.value}

    @classmethod
    def from_payload(cls, payload: dict) -> ChangeScreen:
        return cls(screen=ActivePage(payload["screen"]))


@_register
@dataclass(frozen=True)
class DrawScreen(Action):
    kind = ActionKind.DRAW_SCREEN


@_register
@dataclass(frozen=True)
class DrawScreenSuccess(Action):
    kind = ActionKind.DRAW_SCREEN_SUCCESS
    screen_width: int


@_register
@dataclass(frozen=True)
class DrawScreenFailure(Action):
    kind = ActionKind.DRAW_SCREEN_FAILURE
    error: str


@_register
@dataclass(frozen=True)
class TerminalResized(Action):
    """The terminal size changed; later frames are drawn at the new size."""

    kind = ActionKind.TERMINAL_RESIZED
    width: int
    height: int

    def is_enabled(self, state: State) -> bool:
        return self.width > 0 and self.height > 0


@_register
@dataclass(frozen=True)
class TuiRightKeyPushed(Action):
    kind = ActionKind.TUI_RIGHT_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiLeftKeyPushed(Action):
    kind = ActionKind.TUI_LEFT_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiUpKeyPushed(Action):
    kind = ActionKind.TUI_UP_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiDownKeyPushed(Action):
    kind = ActionKind.TUI_DOWN_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiSortKeyPushed(Action):
    kind = ActionKind.TUI_SORT_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiDeltaToggleKeyPushed(Action):
    kind = ActionKind.TUI_DELTA_TOGGLE_KEY_PUSHED


@_register
@dataclass(frozen=True)
class TuiWidgetSelectionKeyPushed(Action):
    kind = ActionKind.TUI_WIDGET_SELECTION_KEY_PUSHED


# Answer of each RPC target, as the action the response is turned into
RECEIVED_BY_TARGET: dict[rpc.RpcTarget, type[RpcReceived]] = {
    cls.target: cls
    for cls in (
        CurrentHeadHeaderReceived,
        CurrentHeadMetadataReceived,
        BestRemoteLevelReceived,
        NetworkConstantsReceived,
        EndorsementsRightsReceived,
        EndorsementsStatusesReceived,
        EndorsementsRightsWithTimeReceived,
        MempoolEndorsementStatsReceived,
        BakingRightsReceived,
        ApplicationStatisticsReceived,
        PerPeerBlockStatisticsReceived,
        OperationsStatisticsReceived,
    )
}
