from pydantic import BaseModel
from typing import Optional
from datetime import datetime
import uuid


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    body: Optional[str] = None
    entity_table: Optional[str] = None
    entity_id: Optional[uuid.UUID] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    unread: int


class MarkReadResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    updated: Optional[int] = None
