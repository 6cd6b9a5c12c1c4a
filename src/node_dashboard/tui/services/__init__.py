"""I/O subsystems of the dashboard.

This package bundles the RPC fetcher, the WebSocket reader and the terminal driver
behind small interfaces, each backed by a worker thread and a bounded worker channel.
"""

from __future__ import annotations

from ...utils import Config
from .base import RpcService, Service, TerminalService, WebsocketService
from .rpc_service import HttpRpcService, RpcCall, RpcFailure, RpcResponse, RpcTarget
from .tui_service import RichTerminalService
from .worker_channel import WorkerRequester, WorkerResponder, worker_channel
from .ws_service import SocketWebsocketService

__all__ = [
    "create_service",
    "Service",
    "RpcService",
    "WebsocketService",
    "TerminalService",
    "RpcCall",
    "RpcFailure",
    "RpcResponse",
    "RpcTarget",
    "WorkerRequester",
    "WorkerResponder",
    "worker_channel",
]


def create_service(config: Config) -> Service:
    """Factory function to create the production Service bundle.

    Args:
        config: Runtime configuration (URLs, queue capacities, timeouts)

    Returns:
        Service whose workers are created but not yet started
    """
    return Service(
        rpc=HttpRpcService(
            config.node_url,
            capacity=config.rpc_queue_capacity,
            timeout=config.rpc_timeout_seconds,
        ),
        websocket=SocketWebsocketService(
            config.websocket_url,
            capacity=config.ws_queue_capacity,
            reconnect_seconds=config.ws_reconnect_seconds,
        ),
        tui=RichTerminalService(
            tick_seconds=config.tick_seconds,
            capacity=config.ui_queue_capacity,
        ),
    )
