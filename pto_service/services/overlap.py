from datetime import date
from typing import Any, Dict, List

from pto_service.models.leave_request import ACTIVE_STATUSES, LeaveRequest
from pto_service.models.user import User
from pto_service.services.request_store import RequestStore


def find_overlaps(requests: RequestStore, user: User, start: date, end: date) -> List[LeaveRequest]:
    """
    Pending/approved requests of the user intersecting [start, end].
    Boundaries are inclusive: sharing a single calendar day is an overlap.
    """
    return requests.query_overlapping(user.id, start, end, ACTIVE_STATUSES)


def has_overlap(requests: RequestStore, user: User, start: date, end: date) -> bool:
    return bool(find_overlaps(requests, user, start, end))


def summarize_overlaps(overlaps: List[LeaveRequest]) -> List[Dict[str, Any]]:
    return [
        {
            "id": r.id,
            "status": r.status,
            "type": r.type,
            "start_date": r.start_date.isoformat(),
            "end_date": r.end_date.isoformat(),
        }
        for r in overlaps
    ]
