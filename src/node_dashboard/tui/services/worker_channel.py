"""Bounded duplex channel between the dispatch loop and a background worker.

The requester half stays with the dispatch loop and never blocks. The responder
half is owned by the worker thread, which may block while waiting for work or for
room in the response queue.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from typing import Generic, TypeVar

from ..exceptions import ChannelClosed, ChannelFull

Req = TypeVar("Req")
Resp = TypeVar("Resp")

# How often blocking responder calls wake up to notice a closed requester
_POLL_SECONDS = 0.1


class _ChannelLink:
    """Queues and liveness flags shared by both halves."""

    def __init__(self, bound: int) -> None:
        if bound <= 0:
            raise ValueError(f"channel bound must be positive, got {bound}")
        self.bound = bound
        self.requests: queue.Queue = queue.Queue(maxsize=bound)
        self.responses: queue.Queue = queue.Queue(maxsize=bound)
        self.requester_closed = threading.Event()
        self.responder_closed = threading.Event()


class WorkerRequester(Generic[Req, Resp]):
    """Requester half: non-blocking send of requests, non-blocking receive of responses."""

    def __init__(self, link: _ChannelLink) -> None:
        self._link = link

    @property
    def bound(self) -> int:
        return self._link.bound

    def try_send(self, request: Req) -> None:
        """Enqueue a request without blocking.

        Raises:
            ChannelClosed: The worker dropped its responder half
            ChannelFull: The request queue is at capacity
        """
        if self._link.responder_closed.is_set():
            raise ChannelClosed("worker is not running")
        try:
            self._link.requests.put_nowait(request)
        except queue.Full as err:
            raise ChannelFull(f"request queue full ({self._link.bound})") from err

    def try_recv(self) -> Resp | None:
        """Return the next response, or None when nothing is waiting.

        Raises:
            ChannelClosed: Nothing is waiting and the worker is gone
        """
        try:
            return self._link.responses.get_nowait()
        except queue.Empty:
            if self._link.responder_closed.is_set():
                raise ChannelClosed("worker is not running") from None
            return None

    def recv(self, timeout: float) -> Resp | None:
        """Wait up to ``timeout`` seconds for a response; None if nothing arrived.

        Raises:
            ChannelClosed: Nothing arrived and the worker is gone
        """
        try:
            return self._link.responses.get(timeout=timeout)
        except queue.Empty:
            if self._link.responder_closed.is_set():
                raise ChannelClosed("worker is not running") from None
            return None

    def drain(self) -> Iterator[Resp]:
        """Yield every response currently waiting, stopping quietly at the end."""
        while True:
            try:
                response = self.try_recv()
            except ChannelClosed:
                return
            if response is None:
                return
            yield response

    def close(self) -> None:
        self._link.requester_closed.set()

    @property
    def closed(self) -> bool:
        return self._link.requester_closed.is_set()


class WorkerResponder(Generic[Req, Resp]):
    """Responder half: blocking receive of requests, blocking send of responses."""

    def __init__(self, link: _ChannelLink) -> None:
        self._link = link

    def recv(self, timeout: float | None = None) -> Req | None:
        """Wait for the next request.

        Args:
            timeout: Give up after this many seconds and return None; wait forever if None

        Raises:
            ChannelClosed: The requester half was dropped
        """
        waited = 0.0
        while True:
            if self._link.requester_closed.is_set():
                raise ChannelClosed("requester dropped")
            try:
                return self._link.requests.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                waited += _POLL_SECONDS
                if timeout is not None and waited >= timeout:
                    return None

    def send(self, response: Resp) -> None:
        """Push a response, waiting for room while the requester is alive.

        Raises:
            ChannelClosed: The requester half was dropped
        """
        while True:
            if self._link.requester_closed.is_set():
                raise ChannelClosed("requester dropped")
            try:
                self._link.responses.put(response, timeout=_POLL_SECONDS)
                return
            except queue.Full:
                continue

    def try_send(self, response: Resp) -> None:
        """Push a response without waiting.

        Raises:
            ChannelClosed: The requester half was dropped
            ChannelFull: The response queue is at capacity
        """
        if self._link.requester_closed.is_set():
            raise ChannelClosed("requester dropped")
        try:
            self._link.responses.put_nowait(response)
        except queue.Full as err:
            raise ChannelFull(f"response queue full ({self._link.bound})") from err

    def close(self) -> None:
        self._link.responder_closed.set()

    @property
    def requester_closed(self) -> bool:
        return self._link.requester_closed.is_set()


def worker_channel(bound: int) -> tuple[WorkerRequester, WorkerResponder]:
    """Create a connected requester/responder pair with both queues bounded."""
    link = _ChannelLink(bound)
    return WorkerRequester(link), WorkerResponder(link)
