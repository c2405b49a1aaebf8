# Chat domain module
from app.domain.chat.models import (
    Conversation,
    ConversationParticipant,
    Message,
    UserStatus,
)

__all__ = [
    "Conversation",
    "ConversationParticipant",
    "Message",
    "UserStatus",
]
