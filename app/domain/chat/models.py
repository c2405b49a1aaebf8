"""
Chat Domain Models

Conversations between two profiles, their messages, and the last-seen
record used when a user is not online.
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.infrastructure.database import Base
import uuid


class Conversation(Base):
    """Conversation with denormalised last-message fields for the inbox"""
    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=func.now())
    last_message_at = Column(DateTime, index=True)
    last_message_text = Column(Text)

    participants = relationship(
        "ConversationParticipant", back_populates="conversation", cascade="all, delete-orphan"
    )


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(
        UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    joined_at = Column(DateTime, default=func.now())

    conversation = relationship("Conversation", back_populates="participants")
    profile = relationship("Profile")


class Message(Base):
    """Message sent by a participant"""
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )


class UserStatus(Base):
    """Last known presence of a user"""
    __tablename__ = "user_status"

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen_at = Column(DateTime)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
