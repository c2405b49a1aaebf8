"""
Chat API Routes

API endpoints for the inbox, message threads and online presence, plus the
presence WebSocket.
"""

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from typing import Optional, List
from datetime import datetime
import asyncio
import logging
import uuid

from redis.exceptions import RedisError

from app.api.deps import CurrentUser, get_redis, require_onboarding_complete, require_roles
from app.core.clock import as_utc_naive
from app.core.errors import get_user_message, raise_for
from app.core.exceptions import DatabaseError, NotFoundError, ValidationError
from app.core.result import as_dict
from app.core.security import verify_token
from app.core.session import session_registry
from app.domain.chat.presence import PresenceService
from app.domain.chat.repository import MESSAGE_PAGE_SIZE
from app.domain.chat.service import ChatService
from app.domain.profiles.models import UserRole
from app.domain.profiles.repository import ProfileRepository
from app.api.v1.chat.schemas import (
    ConversationIdResponse, ConversationResponse, ConversationStart, LinkPatientRequest,
    MessageCreate, MessageResponse, PresenceSnapshot, SendMessageResponse
)
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.redis import get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter()


def _conversation_or_fail(conversation_id: Optional[uuid.UUID]) -> dict:
    if conversation_id is None:
        raise DatabaseError(get_user_message("create-failed"), error_code="create-failed")
    return {"conversation_id": conversation_id}


# ==================== Conversation Endpoints ====================

@router.get("/conversations", response_model=List[ConversationResponse])
def list_conversations(
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Inbox, most recent activity first"""
    return ChatService(db).list_my_conversations(current_user.id)


@router.post("/conversations", response_model=ConversationIdResponse)
def get_or_create_conversation(
    payload: ConversationStart,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Existing two-party conversation with the other user, or a new one"""
    if payload.other_user_id == current_user.id:
        raise ValidationError("No puedes iniciar una conversación contigo mismo")
    if ProfileRepository(db).get_by_id(payload.other_user_id) is None:
        raise NotFoundError("User not found")
    return _conversation_or_fail(
        ChatService(db).get_or_create_conversation(current_user.id, payload.other_user_id)
    )


@router.post("/conversations/link-patient", response_model=ConversationIdResponse)
def link_patient(
    payload: LinkPatientRequest,
    current_user: CurrentUser = Depends(require_roles(UserRole.DOCTOR)),
    db=Depends(get_db)
):
    """Open a thread with a patient and add them to the doctor's patients"""
    patient = ProfileRepository(db).get_by_id(payload.patient_id)
    if patient is None or getattr(patient.role, "value", patient.role) != UserRole.PATIENT.value:
        raise NotFoundError("Patient not found")
    return _conversation_or_fail(
        ChatService(db).link_patient_conversation(current_user.id, payload.patient_id)
    )


# ==================== Message Endpoints ====================

@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponse])
def list_messages(
    conversation_id: uuid.UUID,
    limit: int = Query(MESSAGE_PAGE_SIZE, ge=1, le=200),
    before: Optional[datetime] = Query(None, description="Only messages older than this"),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """One page of messages in ascending order"""
    return ChatService(db).list_messages(
        current_user.id, conversation_id, limit, as_utc_naive(before) if before else None
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED
)
def send_message(
    conversation_id: uuid.UUID,
    payload: MessageCreate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    result = ChatService(db).send_message(conversation_id, current_user.id, payload.body)
    raise_for(result, "create-failed")
    return as_dict(result, "data")


@router.post("/conversations/{conversation_id}/read", response_model=SendMessageResponse)
def mark_conversation_read(
    conversation_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return as_dict(ChatService(db).mark_conversation_read(conversation_id, current_user.id))


# ==================== Presence Endpoints ====================

@router.get("/presence", response_model=PresenceSnapshot)
async def presence_snapshot(
    user_ids: List[uuid.UUID] = Query(..., description="Users to look up"),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    redis=Depends(get_redis),
    db=Depends(get_db)
):
    """Online flag and last-seen time for each requested user"""
    return {"users": await PresenceService(redis, db).snapshot(user_ids)}


async def _heartbeat_loop(presence: PresenceService, user_id: uuid.UUID) -> None:
    while True:
        await presence.heartbeat(user_id)
        await asyncio.sleep(presence.heartbeat_seconds)


async def _relay_events(presence: PresenceService, websocket: WebSocket) -> None:
    async for event in presence.events():
        await websocket.send_json(event)


@router.websocket("/ws/presence")
async def presence_socket(websocket: WebSocket, token: str = Query(...)):
    """
    Presence channel for one signed-in session.

    The access token travels as a query parameter. While the socket is open
    the user is heartbeated online and every presence transition is pushed
    to the client as ``{"user_id", "status", "at"}``. Closing the socket
    marks the user offline.
    """
    payload = verify_token(token, "access")
    if not payload:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        session_data = await session_registry.touch(payload.get("sid"))
        redis = await get_redis_client()
    except (RedisError, OSError) as e:
        logger.warning(f"Presence socket refused, Redis unavailable: {type(e).__name__}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    if session_data is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = uuid.UUID(payload["sub"])
    await websocket.accept()
    db = SessionLocal()
    presence = PresenceService(redis, db)
    tasks = [
        asyncio.create_task(_heartbeat_loop(presence, user_id)),
        asyncio.create_task(_relay_events(presence, websocket)),
    ]
    try:
        while True:
            await websocket.receive_text()
            if await session_registry.touch(payload.get("sid")) is None:
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                break
    except WebSocketDisconnect:
        logger.info("Presence socket closed")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        try:
            await presence.go_offline(user_id)
        finally:
            await asyncio.to_thread(db.close)
