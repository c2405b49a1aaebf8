"""
Notifications API Routes

API endpoints for the notification bell and the notifications page.
"""

from fastapi import APIRouter, Depends, Query
from typing import List
import uuid

from app.api.deps import CurrentUser, require_authenticated
from app.core.errors import raise_for
from app.core.result import as_dict
from app.domain.notifications.service import NotificationService
from app.api.v1.notifications.schemas import (
    MarkReadResponse, NotificationResponse, UnreadCountResponse
)
from app.infrastructure.database import get_db

router = APIRouter()


# ==================== Notification Endpoints ====================

@router.get("/unread", response_model=List[NotificationResponse])
def list_unread(
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    """Ten most recent unread notifications"""
    return NotificationService(db).list_unread(current_user.id)


@router.get("/unread/count", response_model=UnreadCountResponse)
def unread_count(
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    return {"unread": NotificationService(db).unread_count(current_user.id)}


@router.get("/", response_model=List[NotificationResponse])
def list_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    return NotificationService(db).list_notifications(current_user.id, skip, limit)


@router.post("/read-all", response_model=MarkReadResponse)
def mark_all_read(
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    result = NotificationService(db).mark_all_read(current_user.id)
    raise_for(result, "update-failed")
    return as_dict(result, "updated")


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
def mark_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    result = NotificationService(db).mark_read(notification_id, current_user.id)
    raise_for(result, "update-failed")
    return as_dict(result, "updated")
