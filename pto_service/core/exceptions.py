from typing import Any, Dict, Optional

from pto_service.core.results import ErrorKind, LeaveError, Result, T

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class StoreError(AppException):
    """Raised by the stores when the database cannot complete an operation."""
    def __init__(self, message: str = "The data store is currently unavailable."):
        super().__init__(
            message=message,
            status_code=503,
            error_code=ErrorKind.STORE_ERROR.value
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not identify the calling user"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Not authorized (admin only)"):
        super().__init__(
            message=message,
            status_code=403,
            error_code=ErrorKind.NOT_AUTHORIZED.value
        )

# HTTP status per lifecycle error kind
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_TYPE: 400,
    ErrorKind.INVALID_DATE_RANGE: 400,
    ErrorKind.BALANCE_EXCEEDED: 400,
    ErrorKind.INELIGIBLE: 403,
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.NO_APPROVER_ASSIGNED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OVERLAP_CONFLICT: 409,
    ErrorKind.NOT_PENDING: 409,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.STORE_ERROR: 503,
}

class LeaveOperationError(AppException):
    """A failed lifecycle result surfaced at the HTTP boundary."""
    def __init__(self, error: LeaveError):
        self.kind = error.kind
        super().__init__(
            message=error.message,
            status_code=STATUS_BY_KIND.get(error.kind, 400),
            error_code=error.kind.value,
            details=error.details or None
        )

def unwrap(result: Result[T]) -> T:
    """Return the value of a successful result or raise it as a LeaveOperationError."""
    if not result.ok:
        raise LeaveOperationError(result.error)
    return result.value
