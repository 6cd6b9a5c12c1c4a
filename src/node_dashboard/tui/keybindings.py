"""Keyboard and tick input handling.

This module maps key names produced by the terminal service, and the periodic tick,
to the actions the dispatch loop feeds into the store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .actions import (
    Action,
    ApplicationStatisticsGet,
    BestRemoteLevelGet,
    ChangeScreen,
    CurrentHeadHeaderGet,
    CurrentHeadMetadataGet,
    EndorsementsStatusesGet,
    MempoolEndorsementStatsGet,
    OperationsStatisticsGet,
    PerPeerBlockStatisticsGet,
    Shutdown,
    TuiDeltaToggleKeyPushed,
    TuiDownKeyPushed,
    TuiLeftKeyPushed,
    TuiRightKeyPushed,
    TuiSortKeyPushed,
    TuiUpKeyPushed,
    TuiWidgetSelectionKeyPushed,
)
from .services.tui_service import TICK
from .state import ActivePage

if TYPE_CHECKING:
    from .state import State

logger = logging.getLogger(__name__)

QUIT_KEYS = ("f10", "q", "ctrl+c")

_SCREEN_KEYS = {
    "f1": ActivePage.SYNCHRONIZATION,
    "f2": ActivePage.ENDORSEMENTS,
    "f3": ActivePage.STATISTICS,
    "f4": ActivePage.BAKING,
}


class KeybindingHandler:
    """Translates terminal events into actions."""

    def __init__(self, state: State) -> None:
        """Initialize keybinding handler.

        Args:
            state: Store state, read to parameterize tick requests
        """
        self.state = state

    def handle_key(self, key: str) -> list[Action]:
        """Return the actions a key press stands for; empty when the key is not bound.

        Args:
            key: Key name (e.g., "up", "f2", "s", "tab")
        """
        if key in QUIT_KEYS:
            return [Shutdown()]
        if key in _SCREEN_KEYS:
            # the statistics page requests its data from an effect
            return [ChangeScreen(screen=_SCREEN_KEYS[key])]
        if key == "s":
            return [TuiSortKeyPushed()]
        if key == "d":
            return [TuiDeltaToggleKeyPushed()]
        if key in ("tab", "backtab"):
            return [TuiWidgetSelectionKeyPushed()]
        if key == "right":
            return [TuiRightKeyPushed()]
        if key == "left":
            return [TuiLeftKeyPushed()]
        if key == "down":
            return [TuiDownKeyPushed()]
        if key == "up":
            return [TuiUpKeyPushed()]

        logger.debug(f"Key {key!r} not assigned")
        return []

    def handle_tick(self) -> list[Action]:
        """Periodic refresh requests for the current head."""
        level = self.state.current_level
        actions: list[Action] = [
            BestRemoteLevelGet(),
            CurrentHeadHeaderGet(),
            CurrentHeadMetadataGet(),
            EndorsementsStatusesGet(),
            ApplicationStatisticsGet(level=level),
            PerPeerBlockStatisticsGet(level=level),
            MempoolEndorsementStatsGet(),
        ]
        if self.state.ui.active_page is ActivePage.STATISTICS:
            actions.append(OperationsStatisticsGet())
        return actions

    def handle_event(self, event: str) -> list[Action]:
        if event == TICK:
            return self.handle_tick()
        return self.handle_key(event)
