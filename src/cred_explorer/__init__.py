"""Guarded load-then-score state machine for contribution graphs."""

from .address import Address, address_to_string, string_to_address
from .exceptions import (
    AddressValidationError,
    CredExplorerError,
    InvalidStateTransition,
    ValidationError,
)
from .repo import Repo, repo_id_to_string, string_to_repo_id
from .state import (
    AppState,
    Initialized,
    LoadingStatus,
    PagerankEvaluated,
    ReadyToLoadGraph,
    ReadyToRunPagerank,
    StateStore,
    StateTransitionMachine,
    Uninitialized,
    create_state_transition_machine,
    initial_state,
)

__version__ = "0.1.0"

__all__ = [
    "Address",
    "AddressValidationError",
    "AppState",
    "CredExplorerError",
    "Initialized",
    "InvalidStateTransition",
    "LoadingStatus",
    "PagerankEvaluated",
    "ReadyToLoadGraph",
    "ReadyToRunPagerank",
    "Repo",
    "StateStore",
    "StateTransitionMachine",
    "Uninitialized",
    "ValidationError",
    "address_to_string",
    "create_state_transition_machine",
    "initial_state",
    "repo_id_to_string",
    "string_to_address",
    "string_to_repo_id",
]
