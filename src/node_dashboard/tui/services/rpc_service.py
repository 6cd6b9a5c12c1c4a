"""HTTP RPC worker.

One background thread owns the responder half of a worker channel, performs each GET
against the node with a shared ``requests.Session`` and answers with exactly one
RpcResponse or RpcFailure per call.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urljoin

import requests

from ..exceptions import (
    ChannelClosed,
    RpcDeserializationError,
    RpcError,
    RpcProtocolError,
    RpcTransportError,
)
from ..models import (
    BakingRights,
    BlockApplicationStatistics,
    CurrentHeadHeader,
    CurrentHeadMetadata,
    EndorsementRightsWithTime,
    NetworkConstants,
    PerPeerBlockStatistics,
    parse_best_remote_level,
    parse_endorsement_rights,
    parse_endorsement_statuses,
    parse_operation_stats,
)
from .base import RpcService
from .worker_channel import WorkerRequester, WorkerResponder, worker_channel

logger = logging.getLogger(__name__)


class RpcTarget(Enum):
    """Every node endpoint the dashboard polls."""

    ENDORSEMENT_RIGHTS = "EndorsementRights"
    ENDORSEMENTS_STATUS = "EndorsementsStatus"
    CURRENT_HEAD_HEADER = "CurrentHeadHeader"
    OPERATIONS_STATS = "OperationsStats"
    APPLICATION_STATISTICS = "ApplicationStatistics"
    PER_PEER_BLOCK_STATISTICS = "PerPeerBlockStatistics"
    BAKING_RIGHTS = "BakingRights"
    ENDORSEMENT_RIGHTS_WITH_TIME = "EndorsementRightsWithTime"
    MEMPOOL_ENDORSEMENT_STATS = "MempoolEndorsementStats"
    NETWORK_CONSTANTS = "NetworkConstants"
    CURRENT_HEAD_METADATA = "CurrentHeadMetadata"
    BEST_REMOTE_LEVEL = "BestRemoteLevel"

    @property
    def path(self) -> str:
        return _PATHS[self]


_PATHS = {
    RpcTarget.ENDORSEMENT_RIGHTS: "dev/shell/automaton/endorsing_rights",
    RpcTarget.ENDORSEMENTS_STATUS: "dev/shell/automaton/endorsements_status",
    RpcTarget.CURRENT_HEAD_HEADER: "chains/main/blocks/head/header",
    RpcTarget.OPERATIONS_STATS: "dev/shell/automaton/mempool/operation_stats",
    RpcTarget.APPLICATION_STATISTICS: "dev/shell/automaton/stats/current_head/application",
    RpcTarget.PER_PEER_BLOCK_STATISTICS: "dev/shell/automaton/stats/current_head/peers",
    RpcTarget.BAKING_RIGHTS: "chains/main/blocks/head/helpers/baking_rights",
    RpcTarget.ENDORSEMENT_RIGHTS_WITH_TIME: "chains/main/blocks/head/helpers/endorsing_rights",
    RpcTarget.MEMPOOL_ENDORSEMENT_STATS: "dev/shell/automaton/stats/mempool/endorsements",
    RpcTarget.NETWORK_CONSTANTS: "chains/main/blocks/head/context/constants",
    RpcTarget.CURRENT_HEAD_METADATA: "chains/main/blocks/head/metadata",
    RpcTarget.BEST_REMOTE_LEVEL: "dev/peers/best_remote_level",
}


def _list_of(parser):
    def parse(payload: object) -> tuple:
        if not isinstance(payload, list):
            raise TypeError("expected a list")
        return tuple(parser(item) for item in payload)

    return parse


_DECODERS = {
    RpcTarget.ENDORSEMENT_RIGHTS: parse_endorsement_rights,
    RpcTarget.ENDORSEMENTS_STATUS: parse_endorsement_statuses,
    RpcTarget.CURRENT_HEAD_HEADER: CurrentHeadHeader.from_dict,
    RpcTarget.OPERATIONS_STATS: parse_operation_stats,
    RpcTarget.APPLICATION_STATISTICS: _list_of(BlockApplicationStatistics.from_dict),
    RpcTarget.PER_PEER_BLOCK_STATISTICS: _list_of(PerPeerBlockStatistics.from_dict),
    RpcTarget.BAKING_RIGHTS: _list_of(BakingRights.from_dict),
    RpcTarget.ENDORSEMENT_RIGHTS_WITH_TIME: _list_of(EndorsementRightsWithTime.from_dict),
    RpcTarget.MEMPOOL_ENDORSEMENT_STATS: parse_operation_stats,
    RpcTarget.NETWORK_CONSTANTS: NetworkConstants.from_dict,
    RpcTarget.CURRENT_HEAD_METADATA: CurrentHeadMetadata.from_dict,
    RpcTarget.BEST_REMOTE_LEVEL: parse_best_remote_level,
}


def decode_payload(target: RpcTarget, raw: object) -> object:
    """Decode a JSON value into the schema of ``target``.

    Raises:
        RpcDeserializationError: The value does not match the schema
    """
    try:
        return _DECODERS[target](raw)
    except (KeyError, TypeError, ValueError, IndexError, AttributeError) as err:
        raise RpcDeserializationError(target.value, f"unexpected payload shape: {err}") from err


@dataclass(frozen=True)
class RpcCall:
    """One GET request; ``call_id`` correlates the answer with the request."""

    target: RpcTarget
    query: str = ""
    call_id: int = 0

    def url(self, base_url: str) -> str:
        return urljoin(base_url, self.target.path) + self.query


@dataclass(frozen=True)
class RpcResponse:
    """A decoded answer; ``raw`` is the JSON body it was decoded from."""

    target: RpcTarget
    call_id: int
    payload: object
    raw: object

    @classmethod
    def from_raw(cls, target: RpcTarget, call_id: int, raw: object) -> RpcResponse:
        return cls(target=target, call_id=call_id, payload=decode_payload(target, raw), raw=raw)


@dataclass(frozen=True)
class RpcFailure:
    """A call that produced no usable answer."""

    target: RpcTarget
    call_id: int
    reason: str


def fetch(session: requests.Session, base_url: str, call: RpcCall, timeout: float) -> RpcResponse:
    """Perform one call synchronously.

    Raises:
        RpcTransportError: Connection failure, timeout or malformed URL
        RpcProtocolError: Non-2xx status
        RpcDeserializationError: Body is not JSON or does not match the schema
    """
    url = call.url(base_url)
    target = call.target.value
    try:
        response = session.get(url, timeout=timeout)
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as err:
        raise RpcTransportError(target, f"malformed url {url}: {err}") from err
    except requests.exceptions.RequestException as err:
        raise RpcTransportError(target, f"request to {url} failed: {err}") from err

    if not 200 <= response.status_code < 300:
        raise RpcProtocolError(target, f"HTTP {response.status_code} from {url}")

    try:
        raw = response.json()
    except (json.JSONDecodeError, ValueError) as err:
        raise RpcDeserializationError(target, f"body is not JSON: {err}") from err

    return RpcResponse.from_raw(call.target, call.call_id, raw)


class RpcWorker:
    """Background thread answering RpcCall requests."""

    def __init__(
        self,
        base_url: str,
        responder: WorkerResponder,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url
        self.responder = responder
        self.timeout = timeout
        self.session = session or requests.Session()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def handle(self, call: RpcCall) -> RpcResponse | RpcFailure:
        """Answer one call, converting RPC errors into a failure."""
        try:
            return fetch(self.session, self.base_url, call, self.timeout)
        except RpcError as err:
            logger.warning(
                f"RPC call failed: {err}",
                extra={"extra_context": {"target": call.target.value, "call_id": call.call_id}},
            )
            return RpcFailure(target=call.target, call_id=call.call_id, reason=err.message)

    def _run(self) -> None:
        logger.info(f"RpcWorker started for {self.base_url}")
        try:
            while not self._stop_event.is_set():
                call = self.responder.recv(timeout=0.5)
                if call is None:
                    continue
                self.responder.send(self.handle(call))
        except ChannelClosed:
            logger.info("RpcWorker requester dropped")
        finally:
            self.responder.close()
            self.session.close()
        logger.info("RpcWorker stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("RpcWorker already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="RpcWorker")
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=self.timeout + 1.0)
        if self._thread.is_alive():
            logger.warning("RpcWorker thread did not stop within timeout")
        self._thread = None


class HttpRpcService(RpcService):
    """RpcService backed by an RpcWorker thread."""

    def __init__(self, base_url: str, capacity: int = 4096, timeout: float = 5.0):
        requester, responder = worker_channel(capacity)
        self.requester: WorkerRequester = requester
        self.worker = RpcWorker(base_url, responder, timeout=timeout)

    def request(self, call: RpcCall) -> None:
        self.requester.try_send(call)

    def drain(self) -> list[RpcResponse | RpcFailure]:
        return list(self.requester.drain())

    def start(self) -> None:
        self.worker.start()

    def stop(self) -> None:
        self.requester.close()
        self.worker.stop()
