"""
Notifications Service Layer

Writes in-app notifications and queues their e-mail copies. Delivery is best
effort: a failure here is logged and reported as a ``Result`` but never
undoes the change that triggered the notification.
"""

from typing import List, Optional
import uuid

from loguru import logger

from app.core.result import Result
from app.domain.notifications.models import Notification
from app.domain.notifications.repository import NotificationRepository


class NotificationService:
    """Service layer for in-app notifications"""

    def __init__(self, db, send_email_copies: bool = True):
        self.db = db
        self.notification_repo = NotificationRepository(db)
        self.send_email_copies = send_email_copies

    def notify(
        self,
        user_id: uuid.UUID,
        type: str,
        title: str,
        body: Optional[str] = None,
        entity_table: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None
    ) -> Result:
        """Create a notification row and queue the e-mail copy"""
        result = self.notification_repo.create({
            "user_id": user_id,
            "type": type,
            "title": title,
            "body": body,
            "entity_table": entity_table,
            "entity_id": entity_id,
            "is_read": False,
        })
        if result.success and self.send_email_copies:
            self._queue_email(user_id, title, body)
        return result

    def _queue_email(self, user_id: uuid.UUID, title: str, body: Optional[str]) -> None:
        from app.workers.tasks import send_notification_email
        try:
            send_notification_email.delay(str(user_id), title, body)
        except Exception as e:
            logger.warning(f"Could not queue notification e-mail: {type(e).__name__}")

    def list_unread(self, user_id: uuid.UUID) -> List[Notification]:
        return self.notification_repo.list_unread(user_id)

    def list_notifications(self, user_id: uuid.UUID, skip: int = 0, limit: int = 50) -> List[Notification]:
        return self.notification_repo.list_for_user(user_id, skip, limit)

    def unread_count(self, user_id: uuid.UUID) -> int:
        return self.notification_repo.count_unread(user_id)

    def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Result:
        return self.notification_repo.mark_read(notification_id, user_id)

    def mark_all_read(self, user_id: uuid.UUID) -> Result:
        return self.notification_repo.mark_all_read(user_id)
