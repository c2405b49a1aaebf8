"""
API dependencies and route guards

Guards compose in order: authenticated, onboarding complete, role in set.
A guard that fails raises ``GuardRedirect`` naming the screen the caller
belongs on.
"""

from dataclasses import dataclass
import asyncio
from typing import Optional
import uuid

from fastapi import Depends, Request
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.exceptions import ExternalServiceError, SessionError
from app.core.permissions import (
    check_onboarding_complete, check_onboarding_pending, check_role, get_token_payload
)
from app.core.session import session_registry
from app.domain.profiles.models import Profile
from app.domain.profiles.repository import ProfileRepository
from app.infrastructure.database import get_db
from app.infrastructure.redis import get_redis_client
from app.infrastructure.storage import StorageBackend, get_storage


@dataclass
class CurrentUser:
    id: uuid.UUID
    session_id: str
    profile: Profile

    @property
    def role(self) -> Optional[str]:
        role = self.profile.role
        return getattr(role, "value", role)


async def require_authenticated(request: Request, db=Depends(get_db)) -> CurrentUser:
    """Valid token, live session and an existing profile"""
    payload = get_token_payload(request)
    session_id = payload.get("sid")
    try:
        session_data = await session_registry.touch(session_id)
    except (RedisError, OSError) as e:
        raise ExternalServiceError("Session service unavailable", details={"reason": type(e).__name__})
    if session_data is None or session_data["user_id"] != payload.get("sub"):
        raise SessionError()

    profile = await asyncio.to_thread(ProfileRepository(db).get_by_id, uuid.UUID(payload["sub"]))
    if profile is None:
        raise SessionError("Profile not found", error_code="auth/not-authenticated")

    request.state.user_id = profile.id
    return CurrentUser(id=profile.id, session_id=session_id, profile=profile)


def require_onboarding_complete(
    current_user: CurrentUser = Depends(require_authenticated)
) -> CurrentUser:
    check_onboarding_complete(current_user.profile)
    return current_user


def require_roles(*roles: str):
    """Onboarded user whose role is one of ``roles``"""
    def role_checker(
        current_user: CurrentUser = Depends(require_onboarding_complete)
    ) -> CurrentUser:
        check_role(current_user.profile, roles)
        return current_user

    return role_checker


def only_onboarding(current_user: CurrentUser = Depends(require_authenticated)) -> CurrentUser:
    check_onboarding_pending(current_user.profile)
    return current_user


def get_storage_backend() -> StorageBackend:
    return get_storage()


async def get_redis() -> Redis:
    """Connected Redis client; an unreachable server becomes a 503"""
    try:
        return await get_redis_client()
    except (RedisError, OSError) as e:
        raise ExternalServiceError("Presence service unavailable", details={"reason": type(e).__name__})
