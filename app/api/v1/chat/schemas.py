from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime
import uuid

from app.api.v1.profiles.schemas import ProfileSummary


class ConversationResponse(BaseModel):
    """Inbox row"""
    id: uuid.UUID
    created_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    last_message_text: Optional[str] = None
    other_participant: Optional[ProfileSummary] = None
    unread_count: int = 0


class ConversationStart(BaseModel):
    other_user_id: uuid.UUID


class ConversationIdResponse(BaseModel):
    conversation_id: uuid.UUID


class LinkPatientRequest(BaseModel):
    patient_id: uuid.UUID


class MessageCreate(BaseModel):
    body: str = Field(..., max_length=4000)


class MessageResponse(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    body: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SendMessageResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    data: Optional[MessageResponse] = None


class PresenceEntry(BaseModel):
    online: bool
    last_seen_at: Optional[str] = None


class PresenceSnapshot(BaseModel):
    users: Dict[str, PresenceEntry]
