"""In-memory state cell for the state machine.

The store is the integration seam between the machine and whatever renders
the state: subscribers are notified after every change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .models import AppState

logger = logging.getLogger(__name__)

StateListener = Callable[[AppState, AppState], None]


class StateStore:
    """Holds the current application state and notifies listeners on change."""

    def __init__(self, initial: AppState):
        self._state = initial
        self._listeners: list[StateListener] = []

    def get(self) -> AppState:
        return self._state

    def set(self, state: AppState) -> None:
        """Replace the state, notifying listeners with (old, new) if it changed."""
        old = self._state
        self._state = state
        if old == state:
            return

        for listener in list(self._listeners):
            try:
                listener(old, state)
            except Exception:
                name = getattr(listener, "__name__", repr(listener))
                logger.exception("Error in state listener %s", name)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self._listeners = [cb for cb in self._listeners if cb is not listener]

        return unsubscribe
