"""
Authentication Service Layer

Registration, sign-in, token refresh, sign-out and password reset. Every
sign-in opens a ``SessionContext`` in the session registry; access tokens
carry its id as ``sid`` and stop being accepted once the session closes.
Database and bcrypt work in the async paths runs in a worker thread.
"""

import asyncio
from typing import Optional, Tuple
import uuid

from loguru import logger

from app.api.v1.auth.schemas import TokenResponse
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError, ConflictError, SessionError, ValidationError
)
from app.core.security import (
    create_access_token,
    create_password_reset_token,
    create_refresh_token,
    verify_token
)
from app.core.session import SessionContext, SessionRegistry, session_registry
from app.domain.auth.models import UserAccount
from app.domain.auth.repository import UserAccountRepository
from app.domain.profiles.models import Profile, UserRole
from app.domain.profiles.repository import ProfileRepository
from app.infrastructure.database import SessionLocal
from app.infrastructure.encryption import encryption_manager


def password_fingerprint(account: UserAccount) -> str:
    """Changes whenever the password does, which voids older reset links"""
    return encryption_manager.generate_hash(account.password_hash.encode())[:16]


def role_of(profile: Optional[Profile]) -> Optional[str]:
    if profile is None or profile.role is None:
        return None
    return getattr(profile.role, "value", profile.role)


def current_role(user_id: uuid.UUID) -> Optional[str]:
    """Role of an account that may still sign in; SessionError otherwise"""
    db = SessionLocal()
    try:
        account = UserAccountRepository(db).get_by_id(user_id)
        if account is None or not account.is_active:
            raise SessionError("Account is no longer active")
        return role_of(ProfileRepository(db).get_by_id(user_id))
    finally:
        db.close()


async def refresh_session(context: SessionContext) -> Optional[str]:
    """Periodic check that the account behind a session is still allowed in"""
    return await asyncio.to_thread(current_role, context.user_id)


class AuthService:
    """Service layer for authentication operations"""

    def __init__(self, db, registry: Optional[SessionRegistry] = None):
        self.db = db
        self.account_repo = UserAccountRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.registry = registry if registry is not None else session_registry

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> Profile:
        """Create the login account and its empty profile"""
        if self.account_repo.get_by_email(email):
            raise ConflictError("Email already registered", error_code="auth/email-in-use")

        account = self.account_repo.create(email, password)
        profile = self.profile_repo.create({
            "id": account.id,
            "email": account.email,
            "full_name": full_name,
            "role": UserRole.PATIENT,
            "onboarding_completed": False,
            "onboarding_step": None,
        })
        self.db.commit()
        self.db.refresh(profile)
        logger.info("New account registered")
        return profile

    def check_credentials(self, email: str, password: str) -> Tuple[UserAccount, Optional[str]]:
        account = self.account_repo.get_by_email(email)
        if not account or not account.verify_password(password):
            raise AuthenticationError("Invalid email or password")
        if not account.is_active:
            raise AuthenticationError("Account is not active", error_code="auth/account-disabled")
        return account, role_of(self.profile_repo.get_by_id(account.id))

    async def sign_in(self, email: str, password: str) -> TokenResponse:
        """Check credentials, open a session and return its tokens"""
        account, role = await asyncio.to_thread(self.check_credentials, email, password)
        context = SessionContext(
            user_id=account.id,
            role=role,
            refresh_callback=refresh_session,
        )
        await self.registry.open(context)

        await asyncio.to_thread(self.account_repo.update_last_login, account)
        return self._issue(context.session_id, account.id, role)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """New access token for a session that is still open on any worker"""
        payload = verify_token(refresh_token, "refresh")
        if not payload:
            raise SessionError("Invalid or expired refresh token")

        session_id = payload.get("sid")
        session_data = await self.registry.touch(session_id)
        if session_data is None or session_data["user_id"] != payload.get("sub"):
            raise SessionError()

        user_id = uuid.UUID(session_data["user_id"])
        try:
            # Role may have been chosen during onboarding since sign-in
            role = await asyncio.to_thread(self._active_role, user_id)
        except SessionError:
            await self.registry.close(session_id, reason="account_disabled")
            raise

        context = self.registry.get(session_id)
        if context is not None:
            context.role = role
        return self._issue(session_id, user_id, role, refresh_token=refresh_token)

    async def sign_out(self, session_id: str) -> None:
        await self.registry.close(session_id, reason="user")

    def request_password_reset(self, email: str) -> None:
        """Queue a reset link; unknown addresses get the same silent answer"""
        account = self.account_repo.get_by_email(email)
        if account is None or not account.is_active:
            logger.info("Password reset requested for an unknown account")
            return

        token = create_password_reset_token(str(account.id), {"pwf": password_fingerprint(account)})
        reset_link = f"{settings.FRONTEND_URL}/reset-password?token={token}"

        from app.workers.tasks import send_password_reset
        try:
            send_password_reset.delay(account.email, reset_link)
        except Exception as e:
            logger.warning(f"Could not queue password reset e-mail: {type(e).__name__}")

    def apply_password_reset(self, token: str, new_password: str) -> UserAccount:
        payload = verify_token(token, "password_reset")
        if not payload:
            raise ValidationError("Invalid or expired reset link", error_code="auth/invalid-reset-token")

        account = self.account_repo.get_by_id(uuid.UUID(payload["sub"]))
        if account is None or payload.get("pwf") != password_fingerprint(account):
            raise ValidationError("Invalid or expired reset link", error_code="auth/invalid-reset-token")

        self.account_repo.set_password(account, new_password)
        return account

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password from an e-mailed link and end all sessions"""
        account = await asyncio.to_thread(self.apply_password_reset, token, new_password)
        await self.registry.close_user(account.id, reason="password_reset")

    def change_password(self, user_id: uuid.UUID, current_password: str, new_password: str) -> None:
        account = self.account_repo.get_by_id(user_id)
        if account is None or not account.verify_password(current_password):
            raise AuthenticationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from current password")
        self.account_repo.set_password(account, new_password)

    def _active_role(self, user_id: uuid.UUID) -> Optional[str]:
        account = self.account_repo.get_by_id(user_id)
        if account is None or not account.is_active:
            raise SessionError("User not found or inactive")
        return role_of(self.profile_repo.get_by_id(user_id))

    def _issue(
        self,
        session_id: str,
        user_id: uuid.UUID,
        role: Optional[str],
        refresh_token: Optional[str] = None,
    ) -> TokenResponse:
        claims = {"sid": session_id, "role": role}
        return TokenResponse(
            access_token=create_access_token(str(user_id), claims),
            refresh_token=refresh_token or create_refresh_token(str(user_id), claims),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            session_id=session_id,
            user_id=user_id,
            role=role,
        )
