"""Custom exceptions for Chors."""


class ChorsError(Exception):
    """Base exception for all Chors errors."""


class NotFoundError(ChorsError):
    """Raised when an operation references a missing task or view."""


class CycleDetectedError(ChorsError):
    """Raised when a reparent would make a task its own ancestor."""


class InvalidStateError(ChorsError):
    """Raised when an operation is not allowed in the current state."""


class ValidationFailedError(ChorsError):
    """Raised when input (an edit buffer, a filter, a snapshot) is malformed."""


class StorageError(ChorsError):
    """Raised when the task file cannot be read or written."""
