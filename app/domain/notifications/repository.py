from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
import uuid

from app.core.logging import log_error
from app.core.result import Ok, Err, ErrorKind, Result
from app.domain.notifications.models import Notification

UNREAD_LIMIT = 10


class NotificationRepository:
    """Repository for notification rows"""

    def __init__(self, db):
        self.db = db

    def create(self, payload: dict) -> Result:
        try:
            notification = Notification(**payload)
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
            return Ok(notification)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("create notification", e)
            return Err(ErrorKind.UNEXPECTED, "create-failed")

    def list_unread(self, user_id: uuid.UUID, limit: int = UNREAD_LIMIT) -> List[Notification]:
        """Newest unread notifications"""
        try:
            return self.db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read == False  # noqa: E712
            ).order_by(Notification.created_at.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list unread notifications", e)
            return []

    def list_for_user(self, user_id: uuid.UUID, skip: int = 0, limit: int = 50) -> List[Notification]:
        try:
            return self.db.query(Notification).filter(
                Notification.user_id == user_id
            ).order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list notifications", e)
            return []

    def count_unread(self, user_id: uuid.UUID) -> int:
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).count()

    def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Result:
        """Mark one of the user's notifications as read"""
        try:
            rows = self.db.query(Notification).filter(
                Notification.id == notification_id,
                Notification.user_id == user_id
            ).update({"is_read": True})
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("mark notification read", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")
        if rows == 0:
            return Err(ErrorKind.NOT_FOUND, "not-found")
        return Ok(rows)

    def mark_all_read(self, user_id: uuid.UUID) -> Result:
        try:
            rows = self.db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read == False  # noqa: E712
            ).update({"is_read": True})
            self.db.commit()
            return Ok(rows)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("mark all notifications read", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")

    def get(self, notification_id: uuid.UUID) -> Optional[Notification]:
        return self.db.query(Notification).filter(Notification.id == notification_id).first()
