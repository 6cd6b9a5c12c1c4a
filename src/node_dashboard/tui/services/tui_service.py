"""Terminal backend: modes, drawing, and the key and tick event source.

Two background threads share the responder half of the UI channel. The input
reader decodes raw stdin bytes into key names and the ticker emits ``tick`` at a
fixed interval. Both drop events when the channel is full.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import termios
import threading
import tty

from rich.console import Console, RenderableType
from rich.errors import LiveError
from rich.live import Live

from ..exceptions import ChannelClosed, ChannelFull, TerminalError
from .base import TerminalService
from .worker_channel import WorkerRequester, WorkerResponder, worker_channel

logger = logging.getLogger(__name__)

TICK = "tick"

_MOUSE_CAPTURE_ON = "\x1b[?1000h\x1b[?1006h"
_MOUSE_CAPTURE_OFF = "\x1b[?1006l\x1b[?1000l"

# Escape sequences after the leading ESC
_ESCAPE_KEYS = {
    "[A": "up",
    "OA": "up",
    "[B": "down",
    "OB": "down",
    "[C": "right",
    "OC": "right",
    "[D": "left",
    "OD": "left",
    "OP": "f1",
    "[11~": "f1",
    "OQ": "f2",
    "[12~": "f2",
    "OR": "f3",
    "[13~": "f3",
    "OS": "f4",
    "[14~": "f4",
    "[21~": "f10",
    "[Z": "backtab",
}

_CHAR_KEYS = {
    "\t": "tab",
    "\r": "enter",
    "\n": "enter",
    "\x03": "ctrl+c",
}


def decode_keys(data: str) -> list[str]:
    """Split a chunk of raw terminal input into key names.

    Printable characters map to themselves, known escape sequences to names such as
    ``up`` or ``f10``. Mouse reports and unknown sequences are dropped.
    """
    keys: list[str] = []
    index = 0
    while index < len(data):
        char = data[index]
        if char != "\x1b":
            if char in _CHAR_KEYS:
                keys.append(_CHAR_KEYS[char])
            elif char.isprintable():
                keys.append(char)
            index += 1
            continue

        rest = data[index + 1 :]
        if not rest:
            keys.append("esc")
            break
        if rest.startswith("[<"):
            # SGR mouse report: ESC [ < b ; x ; y (M|m)
            end = min((pos for pos in (rest.find("M"), rest.find("m")) if pos >= 0), default=-1)
            index += 1 + (end + 1 if end >= 0 else len(rest))
            continue
        for sequence, name in _ESCAPE_KEYS.items():
            if rest.startswith(sequence):
                keys.append(name)
                index += 1 + len(sequence)
                break
        else:
            logger.debug(f"Ignoring unknown escape sequence {rest[:6]!r}")
            index += 1
            # skip the remainder of a CSI sequence
            if rest.startswith("["):
                while index < len(data) and not data[index].isalpha() and data[index] != "~":
                    index += 1
                index += 1
    return keys


class InputReader:
    """Background thread turning stdin bytes into key events."""

    def __init__(self, responder: WorkerResponder, stream=None):
        self.responder = responder
        self.stream = stream or sys.stdin
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def _publish(self, key: str) -> None:
        try:
            self.responder.try_send(key)
        except ChannelFull:
            logger.warning(f"UI queue full, dropping key {key!r}")

    def _run(self) -> None:
        fd = self.stream.fileno()
        try:
            while not self._stop_event.is_set():
                ready, _, _ = select.select([fd], [], [], 0.1)
                if not ready:
                    continue
                data = os.read(fd, 64).decode("utf-8", errors="ignore")
                for key in decode_keys(data):
                    self._publish(key)
        except ChannelClosed:
            logger.info("InputReader requester dropped")
        except OSError as err:
            logger.error(f"InputReader failed: {err}", exc_info=True)
        logger.info("InputReader stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("InputReader already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="InputReader")
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=1.0)
        self._thread = None


class Ticker:
    """Background thread emitting a tick every ``interval`` seconds."""

    def __init__(self, responder: WorkerResponder, interval: float = 1.0):
        self.responder = responder
        self.interval = interval
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def _run(self) -> None:
        logger.info(f"Ticker started with interval {self.interval}s")
        try:
            while not self._stop_event.wait(self.interval):
                try:
                    self.responder.try_send(TICK)
                except ChannelFull:
                    logger.warning("UI queue full, skipping tick")
        except ChannelClosed:
            logger.info("Ticker requester dropped")
        logger.info("Ticker stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Ticker already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="Ticker")
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=self.interval * 2)
        self._thread = None


class RichTerminalService(TerminalService):
    """TerminalService drawing full frames through a rich Live display."""

    def __init__(
        self,
        tick_seconds: float = 1.0,
        capacity: int = 100,
        console: Console | None = None,
    ):
        self.console = console or Console()
        requester, responder = worker_channel(capacity)
        self.requester: WorkerRequester = requester
        self.responder: WorkerResponder = responder
        self.input_reader = InputReader(responder)
        self.ticker = Ticker(responder, interval=tick_seconds)
        self._live: Live | None = None
        self._saved_termios: list | None = None
        # width of the last size() reading, reported by draw()
        self._width: int | None = None

    def enter(self) -> None:
        if self._live is not None:
            return
        try:
            self._saved_termios = termios.tcgetattr(sys.stdin)
            tty.setcbreak(sys.stdin.fileno())
        except (termios.error, AttributeError, ValueError) as err:
            logger.warning(f"Could not switch terminal to raw input: {err}")
            self._saved_termios = None
        self.console.file.write(_MOUSE_CAPTURE_ON)
        self._live = Live(console=self.console, screen=True, auto_refresh=False, transient=True)
        try:
            self._live.start()
        except LiveError as err:
            self._live = None
            raise TerminalError(f"cannot enter alternate screen: {err}") from err

    def restore(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
            self.console.file.write(_MOUSE_CAPTURE_OFF)
            self.console.file.flush()
        if self._saved_termios is not None:
            try:
                termios.tcsetattr(sys.stdin, termios.TCSADRAIN, self._saved_termios)
            except (termios.error, ValueError) as err:
                logger.warning(f"Could not restore terminal modes: {err}")
            self._saved_termios = None

    def draw(self, renderable: RenderableType) -> int:
        if self._live is None:
            raise TerminalError("terminal is not in dashboard mode")
        try:
            self._live.update(renderable, refresh=True)
        except (OSError, LiveError) as err:
            raise TerminalError(f"draw failed: {err}") from err
        if self._width is None:
            return self.console.size.width
        return self._width

    def size(self) -> tuple[int, int]:
        width, height = self.console.size
        self._width = width
        return width, height

    def next_events(self, timeout: float) -> list[str]:
        first = self.requester.recv(timeout)
        if first is None:
            return []
        return [first, *self.requester.drain()]

    def start(self) -> None:
        self.input_reader.start()
        self.ticker.start()

    def stop(self) -> None:
        self.requester.close()
        self.ticker.stop()
        self.input_reader.stop()
        self.restore()
