"""Custom exceptions for dashboard operations.

This module defines a hierarchy of exceptions for the different failure scenarios
of the dashboard, so workers and effects can catch exactly what they can recover from.
"""

from __future__ import annotations


class TUIError(Exception):
    """Base exception for all dashboard errors."""


class ConfigError(TUIError):
    """Raised when configuration is invalid or cannot be loaded."""


class TerminalError(TUIError):
    """Raised when the terminal backend cannot draw or change modes."""


class ChannelError(TUIError):
    """Raised when a worker channel cannot accept or deliver a message."""


class ChannelFull(ChannelError):
    """Raised by non-blocking sends when the bounded queue is at capacity."""


class ChannelClosed(ChannelError):
    """Raised when the other half of a worker channel has been dropped."""


class RpcError(TUIError):
    """Base exception for failed RPC calls, tagged with the call target."""

    def __init__(self, target: str, message: str) -> None:
        super().__init__(f"{target}: {message}")
        self.target = target
        self.message = message


class RpcTransportError(RpcError):
    """Raised on connection failures, timeouts, and malformed URLs."""


class RpcProtocolError(RpcError):
    """Raised on non-2xx responses."""


class RpcDeserializationError(RpcError):
    """Raised when a body is not JSON or does not match the target schema."""
