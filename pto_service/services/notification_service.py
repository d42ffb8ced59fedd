import logging
from typing import Optional

from sqlalchemy.orm import Session

from pto_service.models.notification import Notification
from pto_service.models.user import User
from pto_service.services.base import BaseService

logger = logging.getLogger(__name__)


class Notifier:
    """Delivery channel for notifications. The default only logs."""

    def deliver(self, user: User, title: str, message: str) -> None:
        logger.info(f"Notification for {user.slack_id}: {title}")


class NotificationService(BaseService):

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        super().__init__(db)
        self.notifier = notifier or Notifier()

    def already_sent(self, user_id: int, event_key: str) -> bool:
        with self.store_errors("notification_lookup"):
            return self.db.query(Notification.id).filter(
                Notification.user_id == user_id,
                Notification.event_key == event_key
            ).first() is not None

    def notify_user(
        self,
        user: User,
        title: str,
        message: str,
        event_key: str,
        type: str = "info",
        request_id: Optional[int] = None
    ) -> Optional[Notification]:
        """
        Record and deliver a notification once per (user, event_key).
        Returns None when the event was already notified.
        """
        if self.already_sent(user.id, event_key):
            return None

        notification = Notification(
            user_id=user.id,
            request_id=request_id,
            event_key=event_key,
            title=title,
            message=message,
            type=type
        )
        self.db.add(notification)
        self.commit("create_notification")
        self.db.refresh(notification)

        try:
            self.notifier.deliver(user, title, message)
        except Exception as e:
            # Don't fail the caller if delivery fails; the record stays for the UI
            logger.warning(f"Notification delivery failed: {e}", exc_info=True)
        return notification
