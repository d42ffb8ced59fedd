from datetime import date
from unittest.mock import Mock

from pto_service.models.leave_request import LeaveRequest, LeaveStatus
from pto_service.models.notification import Notification
from pto_service.services.daily_sweep import run_daily_sweep
from pto_service.services.notification_service import NotificationService, Notifier


def _request(db, user, start, status=LeaveStatus.APPROVED, approver=None):
    request = LeaveRequest(
        user_id=user.id,
        category="Short-term leave",
        type="Vacation",
        start_date=start,
        end_date=start,
        days_count=1,
        status=status.value,
        approver_id=approver.id if approver else None,
    )
    db.add(request)
    db.commit()
    return request


def test_sweep_notifies_requester_and_approver(db_session, employee, manager):
    _request(db_session, employee, date(2025, 3, 10), approver=manager)
    notifier = Mock(spec=Notifier)

    sent = run_daily_sweep(db_session, date(2025, 3, 10), notifier)

    assert sent == 2
    recipients = {call.args[0].id for call in notifier.deliver.call_args_list}
    assert recipients == {employee.id, manager.id}


def test_sweep_is_idempotent_per_day(db_session, employee, manager):
    _request(db_session, employee, date(2025, 3, 10), approver=manager)
    notifier = Mock(spec=Notifier)

    assert run_daily_sweep(db_session, date(2025, 3, 10), notifier) == 2
    assert run_daily_sweep(db_session, date(2025, 3, 10), notifier) == 0

    assert notifier.deliver.call_count == 2
    assert db_session.query(Notification).count() == 2


def test_sweep_ignores_other_days_and_statuses(db_session, employee, manager):
    _request(db_session, employee, date(2025, 3, 11), approver=manager)
    _request(db_session, employee, date(2025, 3, 10), status=LeaveStatus.PENDING, approver=manager)
    _request(db_session, manager, date(2025, 3, 10), status=LeaveStatus.CANCELLED)

    assert run_daily_sweep(db_session, date(2025, 3, 10), Mock(spec=Notifier)) == 0


def test_sweep_without_approver_notifies_requester_only(db_session, make_user):
    loner = make_user("ULONER")
    _request(db_session, loner, date(2025, 3, 10))

    assert run_daily_sweep(db_session, date(2025, 3, 10), Mock(spec=Notifier)) == 1


def test_failed_delivery_still_records_notification(db_session, employee):
    notifier = Mock(spec=Notifier)
    notifier.deliver.side_effect = RuntimeError("slack down")
    service = NotificationService(db_session, notifier)

    notification = service.notify_user(employee, "Hi", "There", event_key="test:1")

    assert notification is not None
    assert service.already_sent(employee.id, "test:1")
    assert service.notify_user(employee, "Hi", "There", event_key="test:1") is None
