"""
Discriminated results returned by the leave lifecycle.

Policy violations are expected outcomes, so they are carried as values
rather than raised. Only the HTTP/chat boundaries turn a failed result into
an exception or a message.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    INVALID_TYPE = "InvalidType"
    INVALID_DATE_RANGE = "InvalidDateRange"
    INELIGIBLE = "Ineligible"
    BALANCE_EXCEEDED = "BalanceExceeded"
    OVERLAP_CONFLICT = "OverlapConflict"
    NOT_FOUND = "NotFound"
    NOT_PENDING = "NotPending"
    NOT_AUTHORIZED = "NotAuthorized"
    NO_APPROVER_ASSIGNED = "NoApproverAssigned"
    INVALID_STATE = "InvalidState"
    STORE_ERROR = "StoreError"


@dataclass
class LeaveError:
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[LeaveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **details: Any) -> "Result[T]":
        return cls(error=LeaveError(kind=kind, message=message, details=details))
