"""Custom exceptions for cred-explorer.

This module defines a hierarchy of exceptions for the different failure
scenarios, so callers can tell malformed input apart from programmer errors.
"""


class CredExplorerError(Exception):
    """Base exception for all cred-explorer errors."""


class ValidationError(CredExplorerError):
    """Raised when an identifier is malformed."""


class AddressValidationError(ValidationError):
    """Raised when an address cannot be encoded or decoded."""


class RepoIdValidationError(ValidationError):
    """Raised when a repository id is not of the form OWNER/NAME."""


class InvalidStateTransition(CredExplorerError):
    """Raised when an operation is invoked from a state that does not allow it.

    This always indicates a caller bug and is never caught by the state machine.
    """


class GraphError(CredExplorerError):
    """Raised when a graph mutation would leave the graph inconsistent."""


class DatasetNotFoundError(CredExplorerError):
    """Raised when no graph data exists for the requested repository."""


class ScoringError(CredExplorerError):
    """Raised when a score decomposition cannot be computed."""


class ConfigError(CredExplorerError):
    """Raised when configuration is invalid or cannot be loaded."""
