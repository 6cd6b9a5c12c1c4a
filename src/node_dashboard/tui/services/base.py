"""Interfaces of the I/O subsystems the store talks to.

Each concrete service hides a background worker behind the requester half of a
worker channel, so none of these calls block on I/O.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rich.console import RenderableType

    from ..models import WebsocketMessage
    from .rpc_service import RpcCall, RpcFailure, RpcResponse


class RpcService(ABC):
    """Fire-and-forget RPC requests with polled answers."""

    @abstractmethod
    def request(self, call: RpcCall) -> None:
        """Enqueue a call.

        Raises:
            ChannelError: The request queue is full or the worker is gone
        """

    @abstractmethod
    def drain(self) -> list[RpcResponse | RpcFailure]:
        """Return every answer received since the last drain."""

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


class WebsocketService(ABC):
    """Unprompted stream of metric envelopes."""

    @abstractmethod
    def drain(self) -> list[list[WebsocketMessage]]:
        """Return every batch received since the last drain."""

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


class TerminalService(ABC):
    """Terminal modes, drawing and the key/tick event source."""

    @abstractmethod
    def enter(self) -> None:
        """Switch to the alternate screen with raw input and mouse capture."""

    @abstractmethod
    def restore(self) -> None:
        """Undo ``enter``; calling it twice is harmless."""

    @abstractmethod
    def draw(self, renderable: RenderableType) -> int:
        """Draw a full frame and return the width it was drawn at.

        Raises:
            TerminalError: The frame could not be drawn
        """

    @abstractmethod
    def size(self) -> tuple[int, int]:
        """Return (columns, rows)."""

    @abstractmethod
    def next_events(self, timeout: float) -> list[str]:
        """Wait up to ``timeout`` seconds for events and return them in arrival order."""

    def resize(self, width: int, height: int) -> None:
        """Follow a size change; a real terminal is sized by the user."""

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


@dataclass
class Service:
    """The subsystems available to effects."""

    rpc: RpcService
    websocket: WebsocketService
    tui: TerminalService

    def start(self) -> None:
        self.rpc.start()
        self.websocket.start()
        self.tui.start()

    def stop(self) -> None:
        self.tui.stop()
        self.websocket.stop()
        self.rpc.stop()
