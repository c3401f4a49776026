"""
This file contains custom, application-specific exceptions.

Every error raised by the swap engine carries an ErrorKind so the HTTP layer
can map it to a stable status code without inspecting messages.
"""
import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_OPERATION = "InvalidOperation"
    INVALID_STATE = "InvalidState"
    CONFLICT = "Conflict"
    ALREADY_RESOLVED = "AlreadyResolved"
    TRANSACTION_FAILED = "TransactionFailed"


class SwapEngineError(Exception):
    """Base class for every domain error raised by the slot/swap logic."""
    kind: ErrorKind = ErrorKind.INVALID_OPERATION
    retryable: bool = True

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(SwapEngineError):
    """Raised when a slot or swap request ID does not exist."""
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(SwapEngineError):
    """Raised when the caller does not own the record they are acting on."""
    kind = ErrorKind.FORBIDDEN


class InvalidOperationError(SwapEngineError):
    """Raised for requests that make no sense, e.g. swapping with yourself."""
    kind = ErrorKind.INVALID_OPERATION


class InvalidStateError(SwapEngineError):
    """Raised when the current status does not allow the requested transition."""
    kind = ErrorKind.INVALID_STATE


class ConflictError(SwapEngineError):
    """Raised on duplicate pending proposals or when a concurrent writer won the race."""
    kind = ErrorKind.CONFLICT


class AlreadyResolvedError(SwapEngineError):
    """Raised when responding to a swap request that is no longer pending."""
    kind = ErrorKind.ALREADY_RESOLVED


class TransactionFailedError(SwapEngineError):
    """
    Raised when a partially applied swap could not be rolled back.
    The records named in `details` need manual reconciliation.
    """
    kind = ErrorKind.TRANSACTION_FAILED
    retryable = False


class StoreTimeoutError(Exception):
    """Raised by the stores when a database call exceeds STORE_TIMEOUT_SECONDS."""
    pass
