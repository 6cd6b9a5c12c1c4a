"""Services that never touch the network or the real terminal.

Used to replay an action log: RPC calls are recorded instead of sent, the websocket
stream is silent, and frames are drawn into an in-memory console of fixed size.
"""

from __future__ import annotations

import io

from rich.console import Console, RenderableType

from .base import RpcService, Service, TerminalService, WebsocketService
from .rpc_service import RpcCall, RpcFailure, RpcResponse


class RecordingRpcService(RpcService):
    def __init__(self) -> None:
        self.calls: list[RpcCall] = []

    def request(self, call: RpcCall) -> None:
        self.calls.append(call)

    def drain(self) -> list[RpcResponse | RpcFailure]:
        return []


class SilentWebsocketService(WebsocketService):
    def drain(self) -> list:
        return []


class HeadlessTerminalService(TerminalService):
    """Draws into a string buffer; ``frames`` counts the frames drawn."""

    def __init__(self, width: int = 120, height: int = 40) -> None:
        self.console = Console(
            file=io.StringIO(), width=width, height=height, force_terminal=True
        )
        self.frames = 0
        self.entered = False

    def enter(self) -> None:
        self.entered = True

    def restore(self) -> None:
        self.entered = False

    def draw(self, renderable: RenderableType) -> int:
        self.console.file = io.StringIO()
        self.console.print(renderable)
        self.frames += 1
        return self.console.size.width

    def resize(self, width: int, height: int) -> None:
        self.console.size = (width, height)

    @property
    def last_frame(self) -> str:
        return self.console.file.getvalue()

    def size(self) -> tuple[int, int]:
        width, height = self.console.size
        return width, height

    def next_events(self, timeout: float) -> list[str]:
        return []


def offline_service(width: int = 120, height: int = 40) -> Service:
    return Service(
        rpc=RecordingRpcService(),
        websocket=SilentWebsocketService(),
        tui=HeadlessTerminalService(width=width, height=height),
    )
