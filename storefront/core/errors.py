"""
Failure taxonomy for the storefront and the result type every operation returns.
"""
import enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorKind(str, enum.Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    VALIDATION_FAILED = "validation_failed"
    NETWORK_OR_SERVER_ERROR = "network_or_server_error"
    EMPTY_STATE = "empty_state"
    BUSY = "busy"


class StorefrontError(Exception):
    """Base exception for storefront operations"""
    kind = ErrorKind.NETWORK_OR_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotAuthenticated(StorefrontError):
    """Raised when an operation needs a logged-in customer"""
    kind = ErrorKind.NOT_AUTHENTICATED


class ValidationFailed(StorefrontError):
    """Raised when a client-side field check fails"""
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class BackendError(StorefrontError):
    """Raised when a request was sent but failed: non-2xx, timeout or transport error"""
    kind = ErrorKind.NETWORK_OR_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyState(StorefrontError):
    """Raised when there is nothing to act on (no cart, no selection)"""
    kind = ErrorKind.EMPTY_STATE


class OperationResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    field: Optional[str] = None
    data: Optional[Any] = None

    @classmethod
    def ok(cls, message: Optional[str] = None, data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: ErrorKind, message: str, field: Optional[str] = None) -> "OperationResult":
        return cls(success=False, error=error, message=message, field=field)

    @classmethod
    def from_exception(cls, exc: StorefrontError) -> "OperationResult":
        return cls.fail(exc.kind, exc.message, getattr(exc, "field", None))
