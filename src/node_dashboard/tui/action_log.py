"""Action log capture and replay.

This module saves the externally originated actions of a session to disk and feeds
them back through a Store wired to offline services.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .actions import ActionWithMeta
from .effects import EFFECTS
from .reducers import REDUCERS
from .services.offline import offline_service
from .state import State
from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_TERMINAL_SIZE = (120, 40)


@dataclass(frozen=True)
class ActionLog:
    """Initial state, terminal size at capture time, and the recorded actions."""

    init_state: dict
    actions: tuple[ActionWithMeta, ...]
    terminal_size: tuple[int, int] = DEFAULT_TERMINAL_SIZE

    def to_dict(self) -> dict:
        return {
            "init_state": self.init_state,
            "terminal": {"width": self.terminal_size[0], "height": self.terminal_size[1]},
            "actions": [meta.to_dict() for meta in self.actions],
        }


class ActionLogPersister:
    """Reads and writes the action log file."""

    def __init__(self, path: Path):
        """Initialize action log persister.

        Args:
            path: Location of the JSON action log
        """
        self.path = path

    def save(
        self,
        init_state: dict,
        actions: Iterable[ActionWithMeta],
        terminal_size: tuple[int, int] = DEFAULT_TERMINAL_SIZE,
    ) -> bool:
        """Write the log; failures are logged, not raised.

        Returns:
            True if the file was written
        """
        log = ActionLog(
            init_state=init_state, actions=tuple(actions), terminal_size=terminal_size
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(log.to_dict(), f)
        except (OSError, TypeError, ValueError) as err:
            logger.error(f"Failed to save action log: {err}")
            return False

        logger.info(
            f"Saved {len(log.actions)} action(s) to {self.path}",
            extra={"extra_context": {"path": str(self.path)}},
        )
        return True

    def load(self) -> ActionLog:
        """Read the log back.

        Raises:
            FileNotFoundError: No log at ``path``
            ValueError: File is not a valid action log
        """
        with self.path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as err:
                raise ValueError(f"Action log {self.path} is not valid JSON: {err}") from err

        if not isinstance(data, dict) or "actions" not in data:
            raise ValueError(f"Action log {self.path} has no actions")

        actions: list[ActionWithMeta] = []
        for index, entry in enumerate(data["actions"]):
            try:
                actions.append(ActionWithMeta.from_dict(entry))
            except (KeyError, ValueError, TypeError) as err:
                raise ValueError(f"Invalid action #{index} in {self.path}: {err}") from err

        terminal = data.get("terminal") or {}
        return ActionLog(
            init_state=data.get("init_state") or {},
            actions=tuple(actions),
            terminal_size=(
                int(terminal.get("width", DEFAULT_TERMINAL_SIZE[0])),
                int(terminal.get("height", DEFAULT_TERMINAL_SIZE[1])),
            ),
        )


def replay_log(log: ActionLog, max_depth: int = 32) -> Store:
    """Run a loaded log through a fresh Store and return it for inspection."""
    width, height = log.terminal_size
    store = Store(
        State.from_init(log.init_state),
        offline_service(width=width, height=height),
        REDUCERS,
        EFFECTS,
        max_depth=max_depth,
    )
    store.replay(log.actions)
    return store


def replay(path: Path, max_depth: int = 32) -> State:
    """Replay the action log at ``path`` and return the final state."""
    log = ActionLogPersister(path).load()
    logger.info(f"Replaying {len(log.actions)} action(s) from {path}")
    return replay_log(log, max_depth=max_depth).state
