"""State management for the explorer application.

This module provides a unified interface to the state models, the transition
machine, and the state store:
- models.py: State data models
- machine.py: Guarded state transitions
- store.py: In-memory state cell with change listeners
"""

from __future__ import annotations

from .machine import (
    StateTransitionMachine,
    create_state_transition_machine,
    initial_state,
)
from .models import (
    AppState,
    AppSubstate,
    Initialized,
    LoadingStatus,
    PagerankEvaluated,
    ReadyToLoadGraph,
    ReadyToRunPagerank,
    Uninitialized,
)
from .store import StateStore

__all__ = [
    "AppState",
    "AppSubstate",
    "Initialized",
    "LoadingStatus",
    "PagerankEvaluated",
    "ReadyToLoadGraph",
    "ReadyToRunPagerank",
    "StateStore",
    "StateTransitionMachine",
    "Uninitialized",
    "create_state_transition_machine",
    "initial_state",
]
