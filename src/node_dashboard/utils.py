"""Shared helpers for the node dashboard: runtime configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_NODE_URL = "http://127.0.0.1:18732"
DEFAULT_WEBSOCKET_URL = "ws://127.0.0.1:4927"


def _validate_url(name: str, url: str, schemes: tuple[str, ...]) -> str:
    """Check that url parses and uses one of the allowed schemes."""
    if not isinstance(url, str) or not url:
        raise TypeError(f"{name} must be a non-empty string")
    parsed = urlparse(url)
    if parsed.scheme not in schemes or not parsed.netloc:
        raise ValueError(f"{name} must be a {'/'.join(schemes)} URL, got {url!r}")
    # urljoin drops the last path segment without a trailing slash
    if not url.endswith("/"):
        url = url + "/"
    return url


@dataclass(frozen=True)
class Config:
    """Runtime configuration loaded from a JSON file and command line flags."""

    node_url: str = DEFAULT_NODE_URL + "/"
    websocket_url: str = DEFAULT_WEBSOCKET_URL + "/"
    baker_address: str | None = None
    record_actions: bool = False
    action_log_path: Path | None = None
    tick_seconds: float = 1.0
    rpc_queue_capacity: int = 4096
    ws_queue_capacity: int = 4096
    ui_queue_capacity: int = 100
    max_dispatch_depth: int = 32
    rpc_timeout_seconds: float = 5.0
    ws_reconnect_seconds: float = 5.0
    min_terminal_cols: int = 80
    min_terminal_rows: int = 24

    @classmethod
    def from_dict(cls, payload: dict) -> Config:
        """Create a Config object from a raw dictionary."""
        if not isinstance(payload, dict):
            raise TypeError("configuration must be a JSON object")

        node_url = _validate_url(
            "node_url", payload.get("node_url", DEFAULT_NODE_URL), ("http", "https")
        )
        websocket_url = _validate_url(
            "websocket_url", payload.get("websocket_url", DEFAULT_WEBSOCKET_URL), ("ws", "wss")
        )

        baker_address = payload.get("baker_address")
        if baker_address is not None and not isinstance(baker_address, str):
            raise TypeError("baker_address must be a string")

        action_log_raw = payload.get("action_log_path")
        action_log_path = (
            Path(os.path.expanduser(action_log_raw)).resolve() if action_log_raw else None
        )

        tick_seconds = float(payload.get("tick_seconds", 1.0))
        rpc_queue_capacity = int(payload.get("rpc_queue_capacity", 4096))
        ws_queue_capacity = int(payload.get("ws_queue_capacity", 4096))
        ui_queue_capacity = int(payload.get("ui_queue_capacity", 100))
        max_dispatch_depth = int(payload.get("max_dispatch_depth", 32))
        rpc_timeout_seconds = float(payload.get("rpc_timeout_seconds", 5.0))
        ws_reconnect_seconds = float(payload.get("ws_reconnect_seconds", 5.0))
        min_terminal_cols = int(payload.get("min_terminal_cols", 80))
        min_terminal_rows = int(payload.get("min_terminal_rows", 24))

        if tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive, got {tick_seconds}")
        if rpc_queue_capacity <= 0:
            raise ValueError(f"rpc_queue_capacity must be positive, got {rpc_queue_capacity}")
        if ws_queue_capacity <= 0:
            raise ValueError(f"ws_queue_capacity must be positive, got {ws_queue_capacity}")
        if ui_queue_capacity <= 0:
            raise ValueError(f"ui_queue_capacity must be positive, got {ui_queue_capacity}")
        if max_dispatch_depth <= 0:
            raise ValueError(f"max_dispatch_depth must be positive, got {max_dispatch_depth}")
        if rpc_timeout_seconds <= 0:
            raise ValueError(
                f"rpc_timeout_seconds must be positive, got {rpc_timeout_seconds}"
            )
        if ws_reconnect_seconds <= 0:
            raise ValueError(
                f"ws_reconnect_seconds must be positive, got {ws_reconnect_seconds}"
            )
        if min_terminal_cols <= 0:
            raise ValueError(f"min_terminal_cols must be positive, got {min_terminal_cols}")
        if min_terminal_rows <= 0:
            raise ValueError(f"min_terminal_rows must be positive, got {min_terminal_rows}")

        return cls(
            node_url=node_url,
            websocket_url=websocket_url,
            baker_address=baker_address,
            record_actions=bool(payload.get("record_actions", False)),
            action_log_path=action_log_path,
            tick_seconds=tick_seconds,
            rpc_queue_capacity=rpc_queue_capacity,
            ws_queue_capacity=ws_queue_capacity,
            ui_queue_capacity=ui_queue_capacity,
            max_dispatch_depth=max_dispatch_depth,
            rpc_timeout_seconds=rpc_timeout_seconds,
            ws_reconnect_seconds=ws_reconnect_seconds,
            min_terminal_cols=min_terminal_cols,
            min_terminal_rows=min_terminal_rows,
        )

    def with_overrides(self, **overrides: object) -> Config:
        """Return a copy with command line overrides applied and validated."""
        merged = {
            "node_url": self.node_url,
            "websocket_url": self.websocket_url,
            "baker_address": self.baker_address,
            "record_actions": self.record_actions,
            "action_log_path": str(self.action_log_path) if self.action_log_path else None,
        }
        merged.update({key: value for key, value in overrides.items() if value is not None})
        checked = Config.from_dict(merged)
        return replace(
            self,
            node_url=checked.node_url,
            websocket_url=checked.websocket_url,
            baker_address=checked.baker_address,
            record_actions=checked.record_actions,
            action_log_path=checked.action_log_path,
        )


def load_config(path: Path) -> Config:
    """Load configuration from the provided path."""
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    return Config.from_dict(data)
