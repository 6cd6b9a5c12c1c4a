"""Node payload models.

Every RPC and WebSocket payload the dashboard consumes is decoded into one of the
frozen dataclasses below. ``from_dict`` raises KeyError/TypeError/ValueError on a
shape mismatch; the workers translate those into deserialization errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum


def _opt_int(value: object) -> int | None:
    """Coerce an optional numeric field, accepting numeric strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    return int(value)


def _opt_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)


def _require_list(value: object, name: str) -> list:
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    return value


def _require_dict(value: object, name: str) -> dict:
    if not isinstance(value, dict):
        raise TypeError(f"{name} must be an object")
    return value


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_rfc3339_nanos(timestamp: str) -> int | None:
    """Convert an RFC3339 timestamp to unix nanoseconds, None if it cannot be parsed."""
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return (parsed - _EPOCH) // timedelta(microseconds=1) * 1000


# RPC payloads


@dataclass(frozen=True)
class CurrentHeadHeader:
    """Header of the node's current head block."""

    level: int = 0
    hash: str = ""
    timestamp: str = ""
    chain_id: str = ""
    predecessor: str = ""
    protocol: str = ""
    priority: int = 0

    @classmethod
    def from_dict(cls, payload: dict) -> CurrentHeadHeader:
        payload = _require_dict(payload, "header")
        return cls(
            level=int(payload["level"]),
            hash=str(payload["hash"]),
            timestamp=str(payload["timestamp"]),
            chain_id=str(payload.get("chain_id", "")),
            predecessor=str(payload.get("predecessor", "")),
            protocol=str(payload.get("protocol", "")),
            priority=int(payload.get("priority", payload.get("payload_round", 0)) or 0),
        )

    @property
    def timestamp_nanos(self) -> int | None:
        return parse_rfc3339_nanos(self.timestamp)


@dataclass(frozen=True)
class NetworkConstants:
    """Protocol constants; the node may encode numbers as strings."""

    minimal_block_delay: int = 0
    preserved_cycles: int = 0
    blocks_per_cycle: int = 4096

    @classmethod
    def from_dict(cls, payload: dict) -> NetworkConstants:
        payload = _require_dict(payload, "constants")
        return cls(
            minimal_block_delay=int(payload["minimal_block_delay"]),
            preserved_cycles=int(payload["preserved_cycles"]),
            blocks_per_cycle=int(payload.get("blocks_per_cycle", 4096)),
        )


@dataclass(frozen=True)
class CurrentHeadMetadata:
    """The level_info part of the current head metadata."""

    cycle: int = 0
    level: int = 0
    cycle_position: int = 0

    @classmethod
    def from_dict(cls, payload: dict) -> CurrentHeadMetadata:
        level_info = _require_dict(_require_dict(payload, "metadata")["level_info"], "level_info")
        return cls(
            cycle=int(level_info["cycle"]),
            level=int(level_info["level"]),
            cycle_position=int(level_info.get("cycle_position", 0)),
        )


@dataclass(frozen=True)
class EndorsementStatus:
    """Progress of one endorsement operation through the node, times in nanoseconds."""

    slot: int
    state: str
    broadcast: bool = False
    received_hash_time: int | None = None
    received_contents_time: int | None = None
    decoded_time: int | None = None
    prechecked_time: int | None = None
    applied_time: int | None = None
    broadcast_time: int | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> EndorsementStatus:
        payload = _require_dict(payload, "endorsement status")
        return cls(
            slot=int(payload["slot"]),
            state=str(payload["state"]),
            broadcast=bool(payload.get("broadcast", False)),
            received_hash_time=_opt_int(payload.get("received_hash_time")),
            received_contents_time=_opt_int(payload.get("received_contents_time")),
            decoded_time=_opt_int(payload.get("decoded_time")),
            prechecked_time=_opt_int(payload.get("prechecked_time")),
            applied_time=_opt_int(payload.get("applied_time")),
            broadcast_time=_opt_int(payload.get("broadcast_time")),
        )


def parse_endorsement_rights(payload: object) -> dict[str, tuple[int, ...]]:
    """Decode ``{delegate: [slot, ...]}``."""
    rights = _require_dict(payload, "endorsement rights")
    return {
        str(delegate): tuple(int(slot) for slot in _require_list(slots, "slots"))
        for delegate, slots in rights.items()
    }


def parse_endorsement_statuses(payload: object) -> dict[str, EndorsementStatus]:
    """Decode ``{operation_hash: status}``."""
    statuses = _require_dict(payload, "endorsement statuses")
    return {str(key): EndorsementStatus.from_dict(value) for key, value in statuses.items()}


@dataclass(frozen=True)
class EndorsementRightsWithTime:
    """Endorsing rights of one delegate at one level with the estimated time."""

    level: int
    delegate: str
    slots: tuple[int, ...] = ()
    estimated_time: str | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> EndorsementRightsWithTime:
        payload = _require_dict(payload, "endorsing rights")
        return cls(
            level=int(payload["level"]),
            delegate=str(payload.get("delegate", "")),
            slots=tuple(int(slot) for slot in payload.get("slots", [])),
            estimated_time=payload.get("estimated_time"),
        )


@dataclass(frozen=True)
class BakingRights:
    """Baking rights of one delegate at one level with the estimated time."""

    level: int
    delegate: str
    round: int = 0
    estimated_time: str | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> BakingRights:
        payload = _require_dict(payload, "baking rights")
        return cls(
            level=int(payload["level"]),
            delegate=str(payload.get("delegate", "")),
            round=int(payload.get("round", payload.get("priority", 0)) or 0),
            estimated_time=payload.get("estimated_time"),
        )


@dataclass(frozen=True)
class BlockApplicationStatistics:
    """Timings of how the node received and applied one block."""

    block_hash: str
    block_timestamp: int
    receive_timestamp: int
    baker: str | None = None
    baker_priority: int | None = None
    download_block_header_start: int | None = None
    download_block_header_end: int | None = None
    download_block_operations_start: int | None = None
    download_block_operations_end: int | None = None
    load_data_start: int | None = None
    load_data_end: int | None = None
    apply_block_start: int | None = None
    apply_block_end: int | None = None
    store_result_start: int | None = None
    store_result_end: int | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> BlockApplicationStatistics:
        payload = _require_dict(payload, "application statistics")
        return cls(
            block_hash=str(payload["block_hash"]),
            block_timestamp=int(payload["block_timestamp"]),
            receive_timestamp=int(payload["receive_timestamp"]),
            baker=payload.get("baker"),
            baker_priority=_opt_int(payload.get("baker_priority")),
            download_block_header_start=_opt_int(payload.get("download_block_header_start")),
            download_block_header_end=_opt_int(payload.get("download_block_header_end")),
            download_block_operations_start=_opt_int(
                payload.get("download_block_operations_start")
            ),
            download_block_operations_end=_opt_int(payload.get("download_block_operations_end")),
            load_data_start=_opt_int(payload.get("load_data_start")),
            load_data_end=_opt_int(payload.get("load_data_end")),
            apply_block_start=_opt_int(payload.get("apply_block_start")),
            apply_block_end=_opt_int(payload.get("apply_block_end")),
            store_result_start=_opt_int(payload.get("store_result_start")),
            store_result_end=_opt_int(payload.get("store_result_end")),
        )


@dataclass(frozen=True)
class PerPeerBlockStatistics:
    """When one peer sent us the current head and when we sent it on."""

    address: str
    block_hash: str
    node_id: str
    received_time: int | None = None
    sent_time: int | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> PerPeerBlockStatistics:
        payload = _require_dict(payload, "per-peer statistics")
        return cls(
            address=str(payload["address"]),
            block_hash=str(payload["block_hash"]),
            node_id=str(payload["node_id"]),
            received_time=_opt_int(payload.get("received_time")),
            sent_time=_opt_int(payload.get("sent_time")),
        )


class OperationKind(Enum):
    """Operation kinds in the node's mempool statistics, declared in sort order."""

    ENDORSEMENT = "Endorsement"
    SEED_NONCE_REVELATION = "SeedNonceRevelation"
    DOUBLE_ENDORSEMENT = "DoubleEndorsement"
    DOUBLE_BAKING = "DoubleBaking"
    ACTIVATION = "Activation"
    PROPOSALS = "Proposals"
    BALLOT = "Ballot"
    ENDORSEMENT_WITH_SLOT = "EndorsementWithSlot"
    FAILING_NOOP = "FailingNoop"
    REVEAL = "Reveal"
    TRANSACTION = "Transaction"
    ORIGINATION = "Origination"
    DELEGATION = "Delegation"
    REGISTER_CONSTANT = "RegisterConstant"
    UNKNOWN = "Unknown"
    DEFAULT = "Default"

    @property
    def order(self) -> int:
        return list(OperationKind).index(self)

    @classmethod
    def parse(cls, value: object) -> OperationKind | None:
        if value is None:
            return None
        try:
            return cls(str(value))
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class OperationNodeStats:
    """Per-peer traffic of one operation; latencies are relative to its first sighting."""

    received: tuple[int, ...] = ()
    sent: tuple[int, ...] = ()
    content_requested: tuple[int, ...] = ()
    content_received: tuple[int, ...] = ()
    content_requested_remote: tuple[int, ...] = ()
    content_sent: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict) -> OperationNodeStats:
        payload = _require_dict(payload, "operation node stats")
        return cls(
            received=tuple(int(entry["latency"]) for entry in payload.get("received", [])),
            sent=tuple(int(entry["latency"]) for entry in payload.get("sent", [])),
            content_requested=tuple(int(v) for v in payload.get("content_requested", [])),
            content_received=tuple(int(v) for v in payload.get("content_received", [])),
            content_requested_remote=tuple(
                int(v) for v in payload.get("content_requested_remote", [])
            ),
            content_sent=tuple(int(v) for v in payload.get("content_sent", [])),
        )


@dataclass(frozen=True)
class OperationStats:
    """Mempool statistics of one operation."""

    kind: OperationKind | None = None
    min_time: int | None = None
    first_block_timestamp: int | None = None
    validation_started: int | None = None
    validation_finished: int | None = None
    validation_result: str | None = None
    preapply_started: int | None = None
    preapply_ended: int | None = None
    validations_length: int = 0
    nodes: dict[str, OperationNodeStats] = field(default_factory=dict)
    injected_timestamp: int | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> OperationStats:
        payload = _require_dict(payload, "operation stats")
        result = payload.get("validation_result")
        finished = result_name = preapply_started = preapply_ended = None
        if result is not None:
            result = _require_list(result, "validation_result")
            finished = _opt_int(result[0])
            result_name = str(result[1]) if len(result) > 1 else None
            preapply_started = _opt_int(result[2]) if len(result) > 2 else None
            preapply_ended = _opt_int(result[3]) if len(result) > 3 else None
        nodes = _require_dict(payload.get("nodes", {}), "nodes")
        return cls(
            kind=OperationKind.parse(payload.get("kind")),
            min_time=_opt_int(payload.get("min_time")),
            first_block_timestamp=_opt_int(payload.get("first_block_timestamp")),
            validation_started=_opt_int(payload.get("validation_started")),
            validation_finished=finished,
            validation_result=result_name,
            preapply_started=preapply_started,
            preapply_ended=preapply_ended,
            validations_length=len(payload.get("validations", [])),
            nodes={
                str(node_id): OperationNodeStats.from_dict(stats)
                for node_id, stats in nodes.items()
            },
            injected_timestamp=_opt_int(payload.get("injected_timestamp")),
        )

    def _earliest(self, attribute: str) -> int | None:
        values = [
            min(getattr(stats, attribute))
            for stats in self.nodes.values()
            if getattr(stats, attribute)
        ]
        return min(values) if values else None

    @property
    def first_received(self) -> int | None:
        return self._earliest("received")

    @property
    def first_sent(self) -> int | None:
        return self._earliest("sent")

    @property
    def first_content_received(self) -> int | None:
        return self._earliest("content_received")

    @property
    def first_content_requested_remote(self) -> int | None:
        return self._earliest("content_requested_remote")

    @property
    def first_content_sent(self) -> int | None:
        return self._earliest("content_sent")

    @property
    def validation_duration(self) -> int | None:
        if self.validation_started is None or self.validation_finished is None:
            return None
        return self.validation_finished - self.validation_started

    @property
    def is_injected(self) -> bool:
        return self.injected_timestamp is not None


def parse_operation_stats(payload: object) -> dict[str, OperationStats]:
    """Decode ``{operation_hash: stats}``."""
    stats = _require_dict(payload, "operation stats")
    return {str(key): OperationStats.from_dict(value) for key, value in stats.items()}


def parse_best_remote_level(payload: object) -> int | None:
    if payload is None:
        return None
    if isinstance(payload, bool) or not isinstance(payload, (int, str)):
        raise TypeError("best remote level must be a number or null")
    return int(payload)


# WebSocket payloads


@dataclass(frozen=True)
class IncomingTransferMetrics:
    eta: float | None = None
    current_block_count: int = 0
    downloaded_blocks: int = 0
    download_rate: float = 0.0
    average_download_rate: float = 0.0
    downloaded_headers: int = 0
    header_download_rate: float = 0.0
    header_average_download_rate: float = 0.0

    @classmethod
    def from_dict(cls, payload: dict) -> IncomingTransferMetrics:
        payload = _require_dict(payload, "incomingTransfer")
        return cls(
            eta=_opt_float(payload.get("eta")),
            current_block_count=int(payload.get("currentBlockCount", 0)),
            downloaded_blocks=int(payload.get("downloadedBlocks", 0)),
            download_rate=float(payload.get("downloadRate", 0.0)),
            average_download_rate=float(payload.get("averageDownloadRate", 0.0)),
            downloaded_headers=int(payload.get("downloadedHeaders", 0)),
            header_download_rate=float(payload.get("headerDownloadRate", 0.0)),
            header_average_download_rate=float(payload.get("headerAverageDownloadRate", 0.0)),
        )


@dataclass(frozen=True)
class BlockApplicationStatus:
    current_application_speed: float = 0.0
    average_application_speed: float = 0.0
    last_applied_block_hash: str | None = None
    last_applied_block_level: int | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> BlockApplicationStatus:
        payload = _require_dict(payload, "blockApplicationStatus")
        last_block = payload.get("lastAppliedBlock") or {}
        return cls(
            current_application_speed=float(payload.get("currentApplicationSpeed", 0.0)),
            average_application_speed=float(payload.get("averageApplicationSpeed", 0.0)),
            last_applied_block_hash=last_block.get("hash"),
            last_applied_block_level=_opt_int(last_block.get("level")),
        )


@dataclass(frozen=True)
class PeerMetrics:
    id: str
    ip_address: str
    transferred_bytes: int = 0
    average_transfer_speed: float = 0.0
    current_transfer_speed: float = 0.0

    @classmethod
    def from_dict(cls, payload: dict) -> PeerMetrics:
        payload = _require_dict(payload, "peer metrics")
        return cls(
            id=str(payload["id"]),
            ip_address=str(payload["ipAddress"]),
            transferred_bytes=int(payload.get("transferredBytes", 0)),
            average_transfer_speed=float(payload.get("averageTransferSpeed", 0.0)),
            current_transfer_speed=float(payload.get("currentTransferSpeed", 0.0)),
        )


@dataclass(frozen=True)
class BlockStatus:
    group: int
    numbers_of_blocks: int
    finished_blocks: int
    applied_blocks: int
    download_duration: float | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> BlockStatus:
        payload = _require_dict(payload, "block status")
        return cls(
            group=int(payload["group"]),
            numbers_of_blocks=int(payload["numbersOfBlocks"]),
            finished_blocks=int(payload["finishedBlocks"]),
            applied_blocks=int(payload["appliedBlocks"]),
            download_duration=_opt_float(payload.get("downloadDuration")),
        )

    @property
    def all_downloaded(self) -> bool:
        return self.finished_blocks >= self.numbers_of_blocks


@dataclass(frozen=True)
class Cycle:
    """Download and application progress of one cycle."""

    id: int
    headers: int
    operations: int
    applications: int
    duration: float | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> Cycle:
        payload = _require_dict(payload, "cycle")
        return cls(
            id=int(payload["id"]),
            headers=int(payload["headers"]),
            operations=int(payload["operations"]),
            applications=int(payload["applications"]),
            duration=_opt_float(payload.get("duration")),
        )

    @property
    def all_applied(self) -> bool:
        # duration is only reported once every header is downloaded
        return self.duration is not None and self.applications == self.headers


class WebsocketMessageType(Enum):
    INCOMING_TRANSFER = "incomingTransfer"
    BLOCK_STATUS = "blockStatus"
    BLOCK_APPLICATION_STATUS = "blockApplicationStatus"
    CHAIN_STATUS = "chainStatus"
    PEERS_METRICS = "peersMetrics"


@dataclass(frozen=True)
class WebsocketMessage:
    """One ``{type, payload}`` envelope, decoded; ``raw`` keeps the original envelope."""

    type: WebsocketMessageType
    payload: object
    raw: dict = field(compare=False, repr=False, default_factory=dict)

    @classmethod
    def from_dict(cls, envelope: dict) -> WebsocketMessage:
        envelope = _require_dict(envelope, "websocket envelope")
        message_type = WebsocketMessageType(envelope["type"])
        payload = envelope.get("payload")
        if message_type is WebsocketMessageType.INCOMING_TRANSFER:
            decoded: object = IncomingTransferMetrics.from_dict(payload)
        elif message_type is WebsocketMessageType.BLOCK_STATUS:
            decoded = tuple(
                BlockStatus.from_dict(item) for item in _require_list(payload, "blockStatus")
            )
        elif message_type is WebsocketMessageType.BLOCK_APPLICATION_STATUS:
            decoded = BlockApplicationStatus.from_dict(payload)
        elif message_type is WebsocketMessageType.CHAIN_STATUS:
            chain = _require_dict(payload, "chainStatus").get("chain", [])
            decoded = tuple(Cycle.from_dict(item) for item in _require_list(chain, "chain"))
        else:
            decoded = tuple(
                PeerMetrics.from_dict(item) for item in _require_list(payload, "peersMetrics")
            )
        return cls(type=message_type, payload=decoded, raw=envelope)
