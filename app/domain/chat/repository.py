"""
Chat Repository Layer

Provides data access operations for conversations, messages and the
persisted last-seen status. Reads return ``[]`` or ``None`` on failure.
"""

from typing import Optional, List
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
import uuid

from app.core.clock import utcnow
from app.core.logging import log_error
from app.core.result import Ok, Err, ErrorKind, Result
from app.domain.chat.models import Conversation, ConversationParticipant, Message, UserStatus

MESSAGE_PAGE_SIZE = 50


class ConversationRepository:
    """Repository for conversations and their participants"""

    def __init__(self, db):
        self.db = db

    def is_participant(self, conversation_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self.db.query(ConversationParticipant).filter(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id
        ).first() is not None

    def list_for_user(self, user_id: uuid.UUID) -> List[Conversation]:
        """Conversations the user takes part in with participant profiles loaded"""
        mine = self.db.query(ConversationParticipant.conversation_id).filter(
            ConversationParticipant.user_id == user_id
        )
        try:
            return self.db.query(Conversation).options(
                joinedload(Conversation.participants).joinedload(ConversationParticipant.profile)
            ).filter(Conversation.id.in_(mine)).order_by(
                Conversation.last_message_at.desc().nulls_last(),
                Conversation.created_at.desc()
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list conversations", e)
            return []

    def find_between(self, user_a: uuid.UUID, user_b: uuid.UUID) -> Optional[Conversation]:
        """Existing two-party conversation between the users, if any"""
        of_a = self.db.query(ConversationParticipant.conversation_id).filter(
            ConversationParticipant.user_id == user_a
        )
        of_b = self.db.query(ConversationParticipant.conversation_id).filter(
            ConversationParticipant.user_id == user_b
        )
        two_party = self.db.query(ConversationParticipant.conversation_id).group_by(
            ConversationParticipant.conversation_id
        ).having(func.count(ConversationParticipant.user_id) == 2)
        return self.db.query(Conversation).filter(
            Conversation.id.in_(of_a),
            Conversation.id.in_(of_b),
            Conversation.id.in_(two_party)
        ).order_by(Conversation.created_at.asc()).first()

    def start(self, user_a: uuid.UUID, user_b: uuid.UUID) -> Conversation:
        conversation = Conversation(created_at=utcnow())
        conversation.participants = [
            ConversationParticipant(user_id=user_a),
            ConversationParticipant(user_id=user_b),
        ]
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def touch(self, conversation_id: uuid.UUID, text: str, at: datetime) -> None:
        """Update the denormalised last-message fields"""
        self.db.query(Conversation).filter(Conversation.id == conversation_id).update({
            "last_message_at": at,
            "last_message_text": text,
        })


class MessageRepository:
    """Repository for chat messages"""

    def __init__(self, db):
        self.db = db

    def list(self, conversation_id: uuid.UUID, limit: int = MESSAGE_PAGE_SIZE,
             before: Optional[datetime] = None) -> List[Message]:
        """Newest ``limit`` messages older than ``before``, returned oldest first"""
        try:
            query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
            if before is not None:
                query = query.filter(Message.created_at < before)
            newest = query.order_by(Message.created_at.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list messages", e)
            return []
        return list(reversed(newest))

    def create(self, conversation_id: uuid.UUID, sender_id: uuid.UUID, body: str) -> Result:
        """Insert a message and bump the conversation in the same transaction"""
        try:
            sent_at = utcnow()
            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                body=body,
                created_at=sent_at,
            )
            self.db.add(message)
            ConversationRepository(self.db).touch(conversation_id, body, sent_at)
            self.db.commit()
            self.db.refresh(message)
            return Ok(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("send message", e)
            return Err(ErrorKind.UNEXPECTED, "create-failed")


class UserStatusRepository:
    """Persisted presence used for last-seen display"""

    def __init__(self, db):
        self.db = db

    def get_many(self, user_ids: List[uuid.UUID]) -> List[UserStatus]:
        if not user_ids:
            return []
        return self.db.query(UserStatus).filter(UserStatus.user_id.in_(user_ids)).all()

    def upsert(self, user_id: uuid.UUID, is_online: bool, seen_at: datetime) -> Result:
        try:
            status = self.db.query(UserStatus).filter(UserStatus.user_id == user_id).first()
            if status is None:
                status = UserStatus(user_id=user_id)
                self.db.add(status)
            status.is_online = is_online
            status.last_seen_at = seen_at
            self.db.commit()
            return Ok(status)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("update user status", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")
