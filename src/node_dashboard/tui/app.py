"""Main dashboard application loop.

This module wires the Store to the production services and runs the single-threaded
dispatch loop: terminal events, RPC answers and WebSocket batches are turned into
actions and dispatched one at a time, then a frame is drawn.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

from ..utils import Config
from .action_log import ActionLogPersister
from .actions import (
    DrawScreen,
    NetworkConstantsGet,
    RpcRequestFailed,
    RpcResponse,
    Shutdown,
    TerminalResized,
    WebsocketMessageReceived,
)
from .effects import EFFECTS
from .keybindings import KeybindingHandler
from .reducers import REDUCERS
from .services import RpcFailure, Service, create_service
from .state import State
from .store import Store

logger = logging.getLogger(__name__)


class DashboardApp:
    """Main dashboard application orchestrating the store and its services."""

    def __init__(self, config: Config, service: Service | None = None):
        """Initialize dashboard application.

        Args:
            config: Runtime configuration
            service: I/O subsystems; the production bundle when omitted
        """
        self.config = config
        self.service = service if service is not None else create_service(config)
        self.store = Store(
            State(baker_address=config.baker_address),
            self.service,
            REDUCERS,
            EFFECTS,
            max_depth=config.max_dispatch_depth,
            record=config.record_actions,
        )
        self.keybinding_handler = KeybindingHandler(self.store.state)
        # size at startup, saved with the action log; later changes are dispatched
        self.terminal_size = self.service.tui.size()
        self._last_size = self.terminal_size
        self._shutdown_signalled = False

    @property
    def state(self) -> State:
        return self.store.state

    def request_shutdown(self) -> None:
        """Ask the loop to dispatch Shutdown on its next iteration; safe from signal handlers."""
        self._shutdown_signalled = True

    def _check_terminal_size(self, size: tuple[int, int]) -> None:
        width, height = size
        if width < self.config.min_terminal_cols or height < self.config.min_terminal_rows:
            logger.warning(
                f"Terminal too small! Need {self.config.min_terminal_cols}x"
                f"{self.config.min_terminal_rows}, got {width}x{height}"
            )

    def _dispatch_events(self, timeout: float) -> None:
        for event in self.service.tui.next_events(timeout):
            for action in self.keybinding_handler.handle_event(event):
                self.store.dispatch(action)

    def _dispatch_rpc_answers(self) -> None:
        for answer in self.service.rpc.drain():
            if isinstance(answer, RpcFailure):
                self.store.dispatch(
                    RpcRequestFailed(
                        target=answer.target, reason=answer.reason, call_id=answer.call_id
                    )
                )
            else:
                self.store.dispatch(RpcResponse(response=answer))

    def _dispatch_websocket_batches(self) -> None:
        for batch in self.service.websocket.drain():
            self.store.dispatch(WebsocketMessageReceived(messages=tuple(batch)))

    def _dispatch_resize(self) -> None:
        size = self.service.tui.size()
        if size == self._last_size:
            return
        self._last_size = size
        self._check_terminal_size(size)
        self.store.dispatch(TerminalResized(width=size[0], height=size[1]))

    def step(self, timeout: float = 0.1) -> None:
        """Run one loop iteration: input, RPC answers, WebSocket batches, size, then a frame."""
        if self._shutdown_signalled:
            self._shutdown_signalled = False
            self.store.dispatch(Shutdown())
            return
        self._dispatch_events(timeout)
        self._dispatch_rpc_answers()
        self._dispatch_websocket_batches()
        if not self.state.ui.shutdown_requested:
            self._dispatch_resize()
            self.store.dispatch(DrawScreen())

    def save_action_log(self) -> bool:
        """Write the recorded actions when recording is on and a path is configured."""
        if self.store.recorded is None or self.config.action_log_path is None:
            return False
        persister = ActionLogPersister(Path(self.config.action_log_path).expanduser())
        return persister.save(
            self.state.init_dict(), self.store.recorded, terminal_size=self.terminal_size
        )

    def run(self) -> int:
        """Run the dispatch loop until Shutdown is reduced.

        Returns:
            Exit code (0 for success, 130 when interrupted, 1 on error)
        """
        try:
            self._check_terminal_size(self.terminal_size)
            self.service.start()
            self.service.tui.enter()
            logger.info("Dashboard main loop started")

            self.store.dispatch(NetworkConstantsGet())
            while not self.state.ui.shutdown_requested:
                self.step()

            logger.info("Dashboard main loop exited")
            return 0

        except KeyboardInterrupt:
            logger.info("Dashboard interrupted by user")
            return 130

        except Exception as err:
            logger.error(f"Dashboard crashed: {err}", exc_info=True)
            self.service.tui.restore()
            Console(stderr=True).print(f"[red]Error: {err}[/red]")
            return 1

        finally:
            self.service.tui.restore()
            self.service.stop()
            self.save_action_log()
            logger.info("Dashboard cleanup complete")
