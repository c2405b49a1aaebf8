"""
Chat Service Layer

Business logic for the inbox and message threads.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import log_error
from app.core.result import Ok, Err, ErrorKind, Result
from app.domain.chat.models import Message
from app.domain.chat.repository import ConversationRepository, MessageRepository, MESSAGE_PAGE_SIZE
from app.domain.profiles.repository import CareLinkRepository

MAX_MESSAGE_LENGTH = 4000


class ChatService:
    """Service layer for conversations and messages"""

    def __init__(self, db):
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.message_repo = MessageRepository(db)
        self.care_link_repo = CareLinkRepository(db)

    def list_my_conversations(self, user_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Inbox rows with the other participant resolved"""
        rows = []
        for conversation in self.conversation_repo.list_for_user(user_id):
            other = next(
                (p.profile for p in conversation.participants if p.user_id != user_id), None
            )
            rows.append({
                "id": conversation.id,
                "created_at": conversation.created_at,
                "last_message_at": conversation.last_message_at,
                "last_message_text": conversation.last_message_text,
                "other_participant": other,
                "unread_count": 0,
            })
        return rows

    def get_or_create_conversation(self, user_id: uuid.UUID, other_user_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Id of the two-party conversation between the users, starting one if needed"""
        if user_id == other_user_id:
            return None
        try:
            existing = self.conversation_repo.find_between(user_id, other_user_id)
            if existing is not None:
                return existing.id
            return self.conversation_repo.start(user_id, other_user_id).id
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("get or create conversation", e)
            return None

    def list_messages(self, user_id: uuid.UUID, conversation_id: uuid.UUID,
                      limit: int = MESSAGE_PAGE_SIZE, before: Optional[datetime] = None) -> List[Message]:
        if not self.conversation_repo.is_participant(conversation_id, user_id):
            return []
        return self.message_repo.list(conversation_id, limit, before)

    def send_message(self, conversation_id: uuid.UUID, sender_id: uuid.UUID, body: str) -> Result:
        """Post a message; only participants may write"""
        body = (body or "").strip()
        if not body:
            return Err(ErrorKind.VALIDATION, "El mensaje está vacío")
        if len(body) > MAX_MESSAGE_LENGTH:
            return Err(ErrorKind.VALIDATION, "El mensaje es demasiado largo")
        if not self.conversation_repo.is_participant(conversation_id, sender_id):
            return Err(ErrorKind.PERMISSION_DENIED, "permission-denied")
        return self.message_repo.create(conversation_id, sender_id, body)

    def mark_conversation_read(self, conversation_id: uuid.UUID, user_id: uuid.UUID) -> Result:
        # Unread tracking is not stored yet
        return Ok(None)

    def link_patient_conversation(self, doctor_id: uuid.UUID, patient_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Open (or reuse) the doctor-patient thread and record the care link"""
        conversation_id = self.get_or_create_conversation(doctor_id, patient_id)
        if conversation_id is not None:
            self.care_link_repo.ensure(doctor_id, patient_id, created_by=doctor_id)
            logger.info("Patient linked through conversation")
        return conversation_id
