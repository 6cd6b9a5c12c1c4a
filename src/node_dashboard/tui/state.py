"""State of the dashboard automaton.

One aggregate State owned by the Store, split into a sub-state per domain. Only
reducers mutate it; effects and views read it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .extended_table import ExtendedTable
from .models import (
    BakingRights,
    BlockApplicationStatistics,
    BlockApplicationStatus,
    BlockStatus,
    CurrentHeadHeader,
    CurrentHeadMetadata,
    Cycle,
    EndorsementRightsWithTime,
    EndorsementStatus,
    IncomingTransferMetrics,
    NetworkConstants,
    OperationStats,
    PerPeerBlockStatistics,
)
from .services.rpc_service import RpcTarget
from .tables import (
    BakingRow,
    EndorsementRow,
    EndorsementState,
    OperationDetailRow,
    OperationRow,
    PeerRow,
    baking_table,
    details_table,
    endorsements_table,
    operations_table,
    peers_table,
)


class ActivePage(Enum):
    """Screens, declared in tab order."""

    SYNCHRONIZATION = "Synchronization"
    ENDORSEMENTS = "Endorsements"
    STATISTICS = "Statistics"
    BAKING = "Baking"

    @property
    def hotkey(self) -> str:
        return f"F{list(ActivePage).index(self) + 1}"


class ActiveWidget(Enum):
    """Tables that can hold the keyboard focus."""

    PEER_TABLE = "peers"
    ENDORSER_TABLE = "endorsers"
    STATISTICS_MAIN = "statistics_main"
    STATISTICS_DETAILS = "statistics_details"
    BAKING_TABLE = "baking"


PAGE_WIDGETS: dict[ActivePage, tuple[ActiveWidget, ...]] = {
    ActivePage.SYNCHRONIZATION: (ActiveWidget.PEER_TABLE,),
    ActivePage.ENDORSEMENTS: (ActiveWidget.ENDORSER_TABLE,),
    ActivePage.STATISTICS: (ActiveWidget.STATISTICS_MAIN, ActiveWidget.STATISTICS_DETAILS),
    ActivePage.BAKING: (ActiveWidget.BAKING_TABLE,),
}


class RpcStatus(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class UiState:
    active_page: ActivePage = ActivePage.SYNCHRONIZATION
    active_widget: ActiveWidget = ActiveWidget.PEER_TABLE
    screen_width: int = 0
    terminal_size: tuple[int, int] = (0, 0)
    delta_toggle: bool = False
    shutdown_requested: bool = False
    last_draw_error: str | None = None
    frames_drawn: int = 0


@dataclass
class RpcState:
    """Per-target request status; ``pending`` maps a target to its outstanding call id."""

    status: dict[RpcTarget, RpcStatus] = field(default_factory=dict)
    pending: dict[RpcTarget, int] = field(default_factory=dict)
    last_errors: dict[RpcTarget, str] = field(default_factory=dict)
    last_error: tuple[RpcTarget, str] | None = None
    successes: int = 0
    failures: int = 0


@dataclass
class SynchronizationState:
    incoming_transfer: IncomingTransferMetrics = field(default_factory=IncomingTransferMetrics)
    application_status: BlockApplicationStatus = field(default_factory=BlockApplicationStatus)
    block_metrics: tuple[BlockStatus, ...] = ()
    cycle_data: tuple[Cycle, ...] = ()
    peers_table: ExtendedTable[PeerRow] = field(default_factory=peers_table)
    current_head_header: CurrentHeadHeader = field(default_factory=CurrentHeadHeader)
    # level of the last head announced as changed, separate from the latest header
    current_head_level: int = 0
    current_cycle: int = -1
    current_head_metadata: CurrentHeadMetadata | None = None
    best_remote_level: int | None = None
    network_constants: NetworkConstants = field(default_factory=NetworkConstants)


@dataclass
class EndorsementsState:
    rights: dict[str, tuple[int, ...]] = field(default_factory=dict)
    statuses: dict[str, EndorsementStatus] = field(default_factory=dict)
    table: ExtendedTable[EndorsementRow] = field(default_factory=endorsements_table)
    summary: dict[EndorsementState, int] = field(default_factory=dict)
    rights_with_time: dict[int, EndorsementRightsWithTime] = field(default_factory=dict)
    mempool_stats: dict[str, OperationStats] = field(default_factory=dict)


@dataclass
class BakingState:
    application_statistics: dict[str, BlockApplicationStatistics] = field(default_factory=dict)
    per_peer_statistics: dict[str, tuple[PerPeerBlockStatistics, ...]] = field(
        default_factory=dict
    )
    table: ExtendedTable[BakingRow] = field(default_factory=baking_table)
    rights: dict[int, BakingRights] = field(default_factory=dict)


@dataclass
class OperationsState:
    stats: dict[str, OperationStats] = field(default_factory=dict)
    main_table: ExtendedTable[OperationRow] = field(default_factory=operations_table)
    details_table: ExtendedTable[OperationDetailRow] = field(default_factory=details_table)
    selected_hash: str | None = None


@dataclass
class State:
    """Aggregate root. ``baker_address`` comes from the configuration."""

    baker_address: str | None = None
    ui: UiState = field(default_factory=UiState)
    rpc: RpcState = field(default_factory=RpcState)
    synchronization: SynchronizationState = field(default_factory=SynchronizationState)
    endorsements: EndorsementsState = field(default_factory=EndorsementsState)
    baking: BakingState = field(default_factory=BakingState)
    operations: OperationsState = field(default_factory=OperationsState)

    @classmethod
    def from_init(cls, init_state: dict) -> State:
        """Build the initial state from its config-derived JSON form."""
        return cls(baker_address=init_state.get("baker_address"))

    def init_dict(self) -> dict:
        return {"baker_address": self.baker_address}

    @property
    def current_level(self) -> int:
        return self.synchronization.current_head_header.level

    def table_for(self, widget: ActiveWidget) -> ExtendedTable:
        if widget is ActiveWidget.PEER_TABLE:
            return self.synchronization.peers_table
        if widget is ActiveWidget.ENDORSER_TABLE:
            return self.endorsements.table
        if widget is ActiveWidget.STATISTICS_MAIN:
            return self.operations.main_table
        if widget is ActiveWidget.STATISTICS_DETAILS:
            return self.operations.details_table
        return self.baking.table

    def focused_table(self) -> ExtendedTable:
        return self.table_for(self.ui.active_widget)

    def all_tables(self) -> list[ExtendedTable]:
        return [self.table_for(widget) for widget in ActiveWidget]
