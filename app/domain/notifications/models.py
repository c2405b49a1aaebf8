from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.infrastructure.database import Base
import uuid


class NotificationType:
    """Type tags written on notification rows"""
    APPOINTMENT_REQUESTED = "appointment_requested"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_REJECTED = "appointment_rejected"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    DOCUMENT_SHARED = "document_shared"


class Notification(Base):
    """In-app notification pointing back at the entity that triggered it"""
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(60), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text)
    entity_table = Column(String(60))
    entity_id = Column(UUID(as_uuid=True))
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now(), index=True)

    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )
