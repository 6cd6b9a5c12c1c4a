"""Row types of every dashboard table, and the builders that derive them from node data.

Each row is a frozen dataclass implementing TableRow. Sort keys come from a lookup
table indexed by column, with a second table for columns whose value depends on the
delta toggle.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum

from .extended_table import ExtendedTable, TableRow
from .models import (
    EndorsementStatus,
    OperationKind,
    OperationStats,
    PeerMetrics,
    PerPeerBlockStatistics,
)
from .tui_utils import PLACEHOLDER, format_bytes, format_clock, short_hash, time_cell


def _sub(later: int | None, earlier: int | None) -> int | None:
    if later is None or earlier is None:
        return None
    return later - earlier


class EndorsementState(Enum):
    """Progress of an endorsement, declared in display order."""

    MISSING = "missing"
    BROADCAST = "broadcast"
    APPLIED = "applied"
    PRECHECKED = "prechecked"
    DECODED = "decoded"
    RECEIVED = "received"

    @classmethod
    def parse(cls, value: str) -> EndorsementState:
        try:
            return cls(value.lower())
        except ValueError:
            # the node knows the operation but reports a stage we do not track
            return cls.RECEIVED

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def order(self) -> int:
        return list(EndorsementState).index(self)

    @property
    def style(self) -> str:
        return _STATE_STYLES[self]


_STATE_STYLES = {
    EndorsementState.MISSING: "black on red",
    EndorsementState.BROADCAST: "black on green",
    EndorsementState.APPLIED: "black on cyan",
    EndorsementState.PRECHECKED: "black on blue",
    EndorsementState.DECODED: "black on magenta",
    EndorsementState.RECEIVED: "black on yellow",
}


# Endorsements


ENDORSEMENT_HEADERS = (
    "Slots",
    "Baker",
    "Status",
    "Delta",
    "Received hash",
    "Received contents",
    "Decoded",
    "Prechecked",
    "Applied",
    "Broadcast",
)
ENDORSEMENT_WIDTHS = (5, 36, 10, 9, 13, 17, 9, 10, 9, 9)
ENDORSEMENT_FIXED = 4


@dataclass(frozen=True)
class EndorsementRow(TableRow):
    """One delegate's endorsement; absolute times are relative to the block timestamp."""

    baker: str
    slot_count: int
    state: EndorsementState
    delta: int | None = None
    received_hash: int | None = None
    received_contents: int | None = None
    decoded: int | None = None
    prechecked: int | None = None
    applied: int | None = None
    broadcast: int | None = None
    received_contents_delta: int | None = None
    decoded_delta: int | None = None
    prechecked_delta: int | None = None
    applied_delta: int | None = None
    broadcast_delta: int | None = None

    @classmethod
    def missing(cls, baker: str, slot_count: int) -> EndorsementRow:
        return cls(baker=baker, slot_count=slot_count, state=EndorsementState.MISSING)

    @classmethod
    def from_status(
        cls, baker: str, slot_count: int, status: EndorsementStatus, block_timestamp: int
    ) -> EndorsementRow:
        received_hash = status.received_hash_time
        contents = status.received_contents_time
        decoded = status.decoded_time
        prechecked = status.prechecked_time
        applied = status.applied_time
        broadcast = status.broadcast_time
        broadcast_delta = _sub(broadcast, applied)
        if broadcast_delta is None:
            broadcast_delta = _sub(broadcast, prechecked)
        return cls(
            baker=baker,
            slot_count=slot_count,
            state=EndorsementState.parse(status.state),
            delta=_sub(broadcast, received_hash),
            received_hash=_sub(received_hash, block_timestamp),
            received_contents=_sub(contents, block_timestamp),
            decoded=_sub(decoded, block_timestamp),
            prechecked=_sub(prechecked, block_timestamp),
            applied=_sub(applied, block_timestamp),
            broadcast=_sub(broadcast, block_timestamp),
            received_contents_delta=_sub(contents, received_hash),
            decoded_delta=_sub(decoded, contents),
            prechecked_delta=_sub(prechecked, decoded),
            applied_delta=_sub(applied, decoded),
            broadcast_delta=broadcast_delta,
        )

    def _toggled(self, delta_toggle: bool) -> tuple[int | None, ...]:
        if delta_toggle:
            return (
                self.received_contents_delta,
                self.decoded_delta,
                self.prechecked_delta,
                self.applied_delta,
                self.broadcast_delta,
            )
        return (self.received_contents, self.decoded, self.prechecked, self.applied, self.broadcast)

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        return [
            (str(self.slot_count), "white dim"),
            (self.baker, "dim"),
            (self.state.label, self.state.style),
            time_cell(self.delta),
            time_cell(self.received_hash),
            *(time_cell(value) for value in self._toggled(delta_toggle)),
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        if column == 0:
            return self.slot_count
        if column == 1:
            return self.baker
        if column == 2:
            return self.state.order
        if column == 3:
            return self.delta
        if column == 4:
            return self.received_hash
        return self._toggled(delta_toggle)[column - 5]


def build_endorsement_rows(
    rights: dict[str, tuple[int, ...]],
    statuses: dict[str, EndorsementStatus],
    block_timestamp: int,
) -> list[EndorsementRow]:
    """One row per delegate with rights, matched to a status by slot; ordered by delta."""
    by_slot = {status.slot: status for status in statuses.values()}
    rows = []
    for baker, slots in rights.items():
        status = next((by_slot[slot] for slot in slots if slot in by_slot), None)
        if status is None:
            rows.append(EndorsementRow.missing(baker, len(slots)))
        else:
            rows.append(EndorsementRow.from_status(baker, len(slots), status, block_timestamp))
    rows.sort(key=lambda row: (row.delta is not None, row.delta or 0))
    return rows


def summarize_endorsements(rows: list[EndorsementRow]) -> dict[EndorsementState, int]:
    """Count delegates in each state; every state is present, in display order."""
    counts = Counter(row.state for row in rows)
    return {state: counts.get(state, 0) for state in EndorsementState}


# Baking (per-peer propagation of the current head)


BAKING_HEADERS = ("Address", "Node Id", "Received", "Sent", "Sent delta")
BAKING_WIDTHS = (21, 13, 9, 9, 10)
BAKING_FIXED = 2


@dataclass(frozen=True)
class BakingRow(TableRow):
    """When a peer sent us the head and when we sent it on, relative to the block timestamp."""

    address: str
    node_id: str
    received: int | None = None
    sent: int | None = None

    @classmethod
    def from_statistics(cls, stats: PerPeerBlockStatistics, block_timestamp: int) -> BakingRow:
        return cls(
            address=stats.address,
            node_id=stats.node_id,
            received=_sub(stats.received_time, block_timestamp),
            sent=_sub(stats.sent_time, block_timestamp),
        )

    @property
    def sent_delta(self) -> int | None:
        return _sub(self.sent, self.received)

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        return [
            (self.address, ""),
            (short_hash(self.node_id, 5), "dim"),
            time_cell(self.received),
            time_cell(self.sent),
            time_cell(self.sent_delta),
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        return (
            self.address,
            self.node_id,
            self.received,
            self.sent,
            self.sent_delta,
        )[column]


# Operations statistics


OPERATIONS_HEADERS = (
    "Datetime",
    "Hash",
    "Nodes",
    "Delta",
    "Received",
    "Content received",
    "Validation started",
    "Preapply started",
    "Preapply finished",
    "Validation finished",
    "Validations",
    "Sent",
    "Kind",
)
OPERATIONS_WIDTHS = (8, 9, 5, 9, 9, 16, 18, 16, 17, 19, 11, 9, 20)
OPERATIONS_FIXED = 3


@dataclass(frozen=True)
class OperationRow(TableRow):
    """Mempool statistics of one operation."""

    hash: str
    datetime: int
    nodes: int
    delta: int | None = None
    received: int | None = None
    content_received: int | None = None
    validation_started: int | None = None
    preapply_started: int | None = None
    preapply_ended: int | None = None
    validation_finished: int | None = None
    validations_length: int = 0
    sent: int | None = None
    kind: OperationKind | None = None
    content_received_delta: int | None = None
    validation_started_delta: int | None = None
    preapply_started_delta: int | None = None
    preapply_ended_delta: int | None = None
    validation_finished_delta: int | None = None
    sent_delta: int | None = None

    @classmethod
    def from_stats(cls, operation_hash: str, stats: OperationStats) -> OperationRow:
        first_received = stats.first_received
        first_sent = stats.first_sent
        content_received = stats.first_content_received
        return cls(
            hash=operation_hash,
            datetime=stats.first_block_timestamp or 0,
            nodes=len(stats.nodes),
            delta=_sub(first_sent, first_received),
            received=first_received,
            content_received=content_received,
            validation_started=stats.validation_started,
            preapply_started=stats.preapply_started,
            preapply_ended=stats.preapply_ended,
            validation_finished=stats.validation_finished,
            validations_length=stats.validations_length,
            sent=first_sent,
            kind=stats.kind,
            content_received_delta=_sub(content_received, first_received),
            validation_started_delta=_sub(stats.validation_started, content_received),
            preapply_started_delta=_sub(stats.preapply_started, stats.validation_started),
            preapply_ended_delta=_sub(stats.preapply_ended, stats.preapply_started),
            validation_finished_delta=stats.validation_duration,
            sent_delta=_sub(first_sent, stats.validation_finished),
        )

    def _toggled(self, delta_toggle: bool) -> tuple[int | None, ...]:
        if delta_toggle:
            return (
                self.content_received_delta,
                self.validation_started_delta,
                self.preapply_started_delta,
                self.preapply_ended_delta,
                self.validation_finished_delta,
            )
        return (
            self.content_received,
            self.validation_started,
            self.preapply_started,
            self.preapply_ended,
            self.validation_finished,
        )

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        validations = (
            (str(self.validations_length), "") if self.validations_length else PLACEHOLDER
        )
        kind = (self.kind.value, "") if self.kind is not None else PLACEHOLDER
        return [
            (format_clock(self.datetime), ""),
            (self.hash[:9], ""),
            (str(self.nodes), "bright_black dim"),
            time_cell(self.delta),
            time_cell(self.received),
            *(time_cell(value) for value in self._toggled(delta_toggle)),
            validations,
            time_cell(self.sent_delta if delta_toggle else self.sent),
            kind,
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        if column == 0:
            return self.datetime
        if column == 1:
            return self.hash
        if column == 2:
            return self.nodes
        if column == 3:
            return self.delta
        if column == 4:
            return self.received
        if 5 <= column <= 9:
            return self._toggled(delta_toggle)[column - 5]
        if column == 10:
            return self.validations_length
        if column == 11:
            return self.sent_delta if delta_toggle else self.sent
        return self.kind.order if self.kind is not None else None


def build_operation_rows(stats: dict[str, OperationStats]) -> list[OperationRow]:
    return [OperationRow.from_stats(operation_hash, item) for operation_hash, item in stats.items()]


DETAILS_HEADERS = (
    "Node Id",
    "1.Rec.",
    "1.Rec.Cont.",
    "1.Sent",
    "Received",
    "Con.Received",
    "Sent",
)
DETAILS_WIDTHS = (13, 9, 11, 9, 8, 12, 6)
DETAILS_FIXED = 3


@dataclass(frozen=True)
class OperationDetailRow(TableRow):
    """How one peer exchanged the selected operation with us."""

    node_id: str
    first_received: int | None = None
    first_content_received: int | None = None
    first_sent: int | None = None
    received: int = 0
    content_received: int = 0
    sent: int = 0

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        return [
            (short_hash(self.node_id, 5), ""),
            time_cell(self.first_received),
            time_cell(self.first_content_received),
            time_cell(self.first_sent),
            (str(self.received), ""),
            (str(self.content_received), ""),
            (str(self.sent), ""),
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        return (
            self.node_id,
            self.first_received,
            self.first_content_received,
            self.first_sent,
            self.received,
            self.content_received,
            self.sent,
        )[column]


def build_detail_rows(stats: OperationStats | None) -> list[OperationDetailRow]:
    if stats is None:
        return []
    rows = []
    for node_id, node in stats.nodes.items():
        rows.append(
            OperationDetailRow(
                node_id=node_id,
                first_received=node.received[0] if node.received else None,
                first_content_received=(
                    node.content_received[0] if node.content_received else None
                ),
                first_sent=min(node.sent) if node.sent else None,
                received=len(node.received),
                content_received=len(node.content_received),
                sent=len(node.sent),
            )
        )
    return rows


# Synchronization peers


PEERS_HEADERS = ("Address", "Total", "Average", "Current")
PEERS_WIDTHS = (22, 12, 12, 12)
PEERS_FIXED = 1


@dataclass(frozen=True)
class PeerRow(TableRow):
    ip_address: str
    transferred_bytes: int
    average_transfer_speed: float
    current_transfer_speed: float

    @classmethod
    def from_metrics(cls, metrics: PeerMetrics) -> PeerRow:
        return cls(
            ip_address=metrics.ip_address,
            transferred_bytes=metrics.transferred_bytes,
            average_transfer_speed=metrics.average_transfer_speed,
            current_transfer_speed=metrics.current_transfer_speed,
        )

    def cells(self, delta_toggle: bool) -> list[tuple[str, str]]:
        return [
            (self.ip_address, ""),
            (format_bytes(self.transferred_bytes), ""),
            (f"{format_bytes(self.average_transfer_speed)}/s", ""),
            (f"{format_bytes(self.current_transfer_speed)}/s", ""),
        ]

    def sort_key(self, column: int, delta_toggle: bool) -> object:
        return (
            self.ip_address,
            self.transferred_bytes,
            self.average_transfer_speed,
            self.current_transfer_speed,
        )[column]


def endorsements_table() -> ExtendedTable[EndorsementRow]:
    return ExtendedTable(ENDORSEMENT_HEADERS, ENDORSEMENT_WIDTHS, ENDORSEMENT_FIXED)


def baking_table() -> ExtendedTable[BakingRow]:
    return ExtendedTable(BAKING_HEADERS, BAKING_WIDTHS, BAKING_FIXED)


def operations_table() -> ExtendedTable[OperationRow]:
    return ExtendedTable(OPERATIONS_HEADERS, OPERATIONS_WIDTHS, OPERATIONS_FIXED)


def details_table() -> ExtendedTable[OperationDetailRow]:
    return ExtendedTable(DETAILS_HEADERS, DETAILS_WIDTHS, DETAILS_FIXED)


def peers_table() -> ExtendedTable[PeerRow]:
    return ExtendedTable(PEERS_HEADERS, PEERS_WIDTHS, PEERS_FIXED)
