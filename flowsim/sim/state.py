from __future__ import annotations

"""
File: flowsim/sim/state.py
Purpose: Holder for the latest published simulation snapshot.
Key responsibilities:
- Replace the snapshot reference as a whole on every publish.
- Fan out publications to renderer/UI subscribers.
"""

import logging
from typing import Callable

from flowsim.sim.entities import SimulationState

logger = logging.getLogger("flow-sim")

StateListener = Callable[[SimulationState], None]


class SimulationStateContainer:
    """Read-mostly snapshot store consumed by renderers."""
    def __init__(self, initial: SimulationState | None = None) -> None:
        self._state = initial if initial is not None else SimulationState()
        self._listeners: list[StateListener] = []
        self.version = 0

    @property
    def current(self) -> SimulationState:
        return self._state

    def publish(self, state: SimulationState) -> None:
        """Swap in a new snapshot and notify subscribers."""
        self._state = state
        self.version += 1
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:  # noqa: BLE001
                logger.exception("state listener error: %s", exc)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; the returned callable removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
