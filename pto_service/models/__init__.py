# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, leave_policy, leave_request, notification

# Explicit class exports for cleaner imports
from .user import User
from .leave_policy import LeaveTypePolicy, EligibilityRule
from .leave_request import LeaveRequest, LeaveStatus
from .notification import Notification

__all__ = [
    "User",
    "LeaveTypePolicy",
    "EligibilityRule",
    "LeaveRequest",
    "LeaveStatus",
    "Notification",
]
