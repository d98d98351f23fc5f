from __future__ import annotations


class MergeError(RuntimeError):
    """Base error for merge sessions and record-store clients."""


class ValidationError(MergeError, ValueError):
    """Raised before any I/O when the merge inputs are incomplete."""


class NotFound(MergeError):
    """The database, record or collection does not exist."""


class TransportError(MergeError):
    """Network or authorization failure talking to the record store."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidTransition(MergeError):
    """An execution run was moved to a status it cannot reach."""
