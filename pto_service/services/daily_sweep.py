import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from pto_service.models.leave_request import LeaveStatus
from pto_service.services.notification_service import NotificationService, Notifier
from pto_service.services.request_store import RequestStore
from pto_service.services.user_store import UserStore

logger = logging.getLogger(__name__)


def run_daily_sweep(db: Session, today: date, notifier: Optional[Notifier] = None) -> int:
    """
    Announce approved leave starting on `today` to the requester and their approver.

    Notifications are keyed by request and calendar date, so re-running the
    sweep for the same day sends nothing new. Returns the number sent.
    """
    requests = RequestStore(db)
    users = UserStore(db)
    notifications = NotificationService(db, notifier)

    starting = requests.query_by_date(today, LeaveStatus.APPROVED.value)
    people = users.get_many(
        [r.user_id for r in starting] + [r.approver_id for r in starting]
    )

    sent = 0
    for request in starting:
        owner = people.get(request.user_id)
        if owner is None:
            continue
        event_key = f"ooo_today:{request.id}:{today.isoformat()}"
        span = f"{request.start_date.isoformat()} → {request.end_date.isoformat()}"

        if notifications.notify_user(
            owner,
            title="Your time off starts today",
            message=f"Enjoy your {request.type} ({span}, {request.days_count} business days).",
            event_key=event_key,
            request_id=request.id,
        ):
            sent += 1

        approver = people.get(request.approver_id)
        if approver is not None and approver.id != owner.id:
            if notifications.notify_user(
                approver,
                title="Team member out of office",
                message=f"{owner.name} is out today for {request.type} ({span}).",
                event_key=event_key,
                request_id=request.id,
            ):
                sent += 1

    logger.info(f"Daily sweep for {today.isoformat()}: {len(starting)} request(s), {sent} notification(s)")
    return sent
