"""WebSocket metrics reader.

The node pushes frames unprompted; each frame is a JSON list of ``{type, payload}``
envelopes. The reader decodes every frame into one batch and reconnects after a
delay whenever the connection drops.
"""

from __future__ import annotations

import json
import logging
import threading

from websockets.exceptions import ConnectionClosed as WebsocketClosed
from websockets.exceptions import InvalidHandshake, InvalidURI
from websockets.sync.client import connect

from ..exceptions import ChannelClosed
from ..models import WebsocketMessage, WebsocketMessageType
from .base import WebsocketService
from .worker_channel import WorkerRequester, WorkerResponder, worker_channel

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {message_type.value for message_type in WebsocketMessageType}


def parse_frame(text: str | bytes) -> list[WebsocketMessage]:
    """Decode one frame.

    Envelopes of unknown type are skipped. A frame that is not JSON, or whose known
    envelopes do not decode, yields an empty batch.
    """
    try:
        envelopes = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        logger.warning(f"Dropping websocket frame that is not JSON: {err}")
        return []
    if isinstance(envelopes, dict):
        envelopes = [envelopes]
    if not isinstance(envelopes, list):
        logger.warning("Dropping websocket frame that is not a list of envelopes")
        return []

    messages: list[WebsocketMessage] = []
    for envelope in envelopes:
        message_type = envelope.get("type") if isinstance(envelope, dict) else None
        if message_type not in _KNOWN_TYPES:
            logger.debug(f"Skipping websocket envelope of unknown type {message_type!r}")
            continue
        try:
            messages.append(WebsocketMessage.from_dict(envelope))
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            logger.warning(
                f"Dropping websocket frame with undecodable {message_type}: {err}",
                extra={"extra_context": {"type": message_type}},
            )
            return []
    return messages


class WebsocketReader:
    """Background thread pushing one batch per received frame."""

    def __init__(
        self,
        url: str,
        responder: WorkerResponder,
        reconnect_seconds: float = 5.0,
        connector=connect,
    ):
        self.url = url
        self.responder = responder
        self.reconnect_seconds = reconnect_seconds
        self._connect = connector
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def _read(self, connection) -> None:
        """Forward frames until the connection closes or the reader is stopped."""
        while not self._stop_event.is_set():
            try:
                frame = connection.recv(timeout=0.5)
            except TimeoutError:
                continue
            batch = parse_frame(frame)
            if batch:
                self.responder.send(batch)

    def _run(self) -> None:
        logger.info(f"WebsocketReader started for {self.url}")
        try:
            while not self._stop_event.is_set():
                try:
                    with self._connect(self.url, open_timeout=self.reconnect_seconds) as connection:
                        logger.info("Websocket connected")
                        self._read(connection)
                except (WebsocketClosed, InvalidHandshake, OSError, TimeoutError) as err:
                    logger.warning(
                        f"Websocket disconnected: {err}",
                        extra={"extra_context": {"url": self.url}},
                    )
                except InvalidURI as err:
                    logger.error(f"Invalid websocket url: {err}")
                    return
                self._stop_event.wait(self.reconnect_seconds)
        except ChannelClosed:
            logger.info("WebsocketReader requester dropped")
        finally:
            self.responder.close()
        logger.info("WebsocketReader stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("WebsocketReader already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="WebsocketReader")
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=2.0)
        if self._thread.is_alive():
            logger.warning("WebsocketReader thread did not stop within timeout")
        self._thread = None


class SocketWebsocketService(WebsocketService):
    """WebsocketService backed by a WebsocketReader thread."""

    def __init__(self, url: str, capacity: int = 4096, reconnect_seconds: float = 5.0):
        requester, responder = worker_channel(capacity)
        self.requester: WorkerRequester = requester
        self.reader = WebsocketReader(url, responder, reconnect_seconds=reconnect_seconds)

    def drain(self) -> list[list[WebsocketMessage]]:
        return list(self.requester.drain())

    def start(self) -> None:
        self.reader.start()

    def stop(self) -> None:
        self.requester.close()
        self.reader.stop()
