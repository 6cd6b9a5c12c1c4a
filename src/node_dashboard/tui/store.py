"""Store: the owner of State and the dispatch loop.

``dispatch`` wraps an action with its metadata, checks the enabling condition, runs
every reducer and then every effect, in registration order. Effects may dispatch
again; each nested dispatch runs one level deeper and chains are cut off at
``max_depth``.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Callable, Iterable

from .actions import Action, ActionWithMeta
from .services.base import Service
from .state import State

logger = logging.getLogger(__name__)

Reducer = Callable[[State, ActionWithMeta], None]
Effect = Callable[["Store", ActionWithMeta], None]


class Store:
    """Single-threaded automaton. Reducer and effect exceptions propagate to the caller."""

    def __init__(
        self,
        state: State,
        service: Service,
        reducers: Iterable[Reducer],
        effects: Iterable[Effect],
        max_depth: int = 32,
        clock: Callable[[], int] = time.time_ns,
        record: bool = False,
    ):
        """Initialize the store.

        Args:
            state: Initial state, owned by the store from now on
            service: I/O subsystems handed to effects
            reducers: Reducers in the order they run
            effects: Effects in the order they run
            max_depth: Nested dispatches at this depth or deeper are dropped
            clock: Source of action timestamps in unix nanoseconds
            record: Keep every externally originated action for the action log
        """
        if max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self._state = state
        self.service = service
        self._reducers = tuple(reducers)
        self._effects = tuple(effects)
        self.max_depth = max_depth
        self._clock = clock
        self._ids = itertools.count()
        self._depth = 0
        self.recorded: list[ActionWithMeta] | None = [] if record else None

    @property
    def state(self) -> State:
        """Committed state; callers outside reducers treat it as read-only."""
        return self._state

    @property
    def depth(self) -> int:
        return self._depth

    def dispatch(self, action: Action) -> bool:
        """Run one action through the reducers and effects.

        Returns:
            True if the action was applied, False if it was disabled or truncated
        """
        meta = ActionWithMeta(
            id=next(self._ids),
            timestamp=self._clock(),
            depth=self._depth,
            action=action,
        )

        if meta.depth >= self.max_depth:
            logger.warning(
                f"Dispatch depth limit reached, dropping {action.kind.value}",
                extra={"extra_context": {"depth": meta.depth, "max_depth": self.max_depth}},
            )
            return False

        if self.recorded is not None and meta.depth == 0:
            self.recorded.append(meta)

        if not action.is_enabled(self._state):
            logger.debug(
                f"Action {action.kind.value} not enabled, ignoring",
                extra={"extra_context": {"id": meta.id, "depth": meta.depth}},
            )
            return False

        logger.debug(
            f"Dispatching {action.kind.value}",
            extra={"extra_context": {"id": meta.id, "depth": meta.depth}},
        )

        for reducer in self._reducers:
            reducer(self._state, meta)

        self._depth += 1
        try:
            for effect in self._effects:
                effect(self, meta)
        finally:
            self._depth -= 1
        return True

    def replay(self, actions: Iterable[ActionWithMeta]) -> State:
        """Dispatch recorded actions in order, reusing each recorded timestamp.

        Every action dispatched while one recorded action cascades gets that action's
        timestamp, so replaying the same log always produces the same state.
        """
        original_clock = self._clock
        try:
            for meta in actions:
                self._clock = lambda timestamp=meta.timestamp: timestamp
                self.dispatch(meta.action)
        finally:
            self._clock = original_clock
        return self._state
