"""
Exception handling utilities.

Defines the matrix engine's exception types and categorizes exceptions by
how the queue drain must treat them.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class MatrixEngineError(Exception):
    """Base class for matrix engine errors."""

    pass


class ConfigNotFound(MatrixEngineError):
    """Raised when an entry references a matrix tier that does not exist."""

    def __init__(self, config_id: int) -> None:
        self.config_id = config_id
        super().__init__(f"Matrix config {config_id} not found")


class ConfigInactive(MatrixEngineError):
    """Raised when an entry targets a matrix tier that no longer accepts entries."""

    def __init__(self, config_id: int) -> None:
        self.config_id = config_id
        super().__init__(f"Matrix config {config_id} is not active")


class UserNotFound(MatrixEngineError):
    """Raised when an entry references a member that does not exist."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"User not found: {username}")


class TransientStorageError(MatrixEngineError):
    """Raised when storage fails in a way that may succeed on retry."""

    pass


class LockContention(MatrixEngineError):
    """Raised when another drain already holds the drain lock."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Drain lock '{job_name}' is held by another run")


# Exception categories based on handling strategy

# Fatal for the entry - park it in the DLQ, never retry automatically
FATAL_FOR_ENTRY = (
    ConfigNotFound,
    ConfigInactive,
    UserNotFound,
)

# Transient - leave the entry queued for the next drain
TRANSIENT = (
    TransientStorageError,
    OperationalError,  # Connection drops, lock timeouts, deadlocks
    DBAPIError,        # Driver-level failures
)


def is_fatal_for_entry(exc: Exception) -> bool:
    """
    Check if exception must park the entry.

    Args:
        exc: Exception to check

    Returns:
        True if the entry can never succeed without operator action
    """
    return isinstance(exc, FATAL_FOR_ENTRY)


def is_transient(exc: Exception) -> bool:
    """
    Check if exception is a transient storage failure.

    Args:
        exc: Exception to check

    Returns:
        True if the entry should simply be retried next drain
    """
    return isinstance(exc, TRANSIENT)
