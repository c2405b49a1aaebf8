from datetime import timedelta
from typing import Optional, Dict, Any
import jwt
from passlib.context import CryptContext
from app.core.clock import utcnow
from app.core.config import settings

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)


def _encode(subject: str, data: Dict[str, Any], token_type: str, expires: timedelta) -> str:
    to_encode = data.copy()
    now = utcnow()
    to_encode.update({
        "exp": now + expires,
        "iat": now,
        "sub": subject,
        "token_type": token_type
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(subject: str, data: Dict[str, Any]) -> str:
    """Create JWT access token"""
    return _encode(
        subject, data, "access",
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def create_refresh_token(subject: str, data: Dict[str, Any]) -> str:
    """Create JWT refresh token"""
    return _encode(
        subject, data, "refresh",
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )


def create_password_reset_token(subject: str, data: Optional[Dict[str, Any]] = None) -> str:
    """Create a short-lived token for the e-mailed reset link"""
    return _encode(
        subject, data or {}, "password_reset",
        timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except jwt.PyJWTError:
        return None


def verify_token(token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
    """Verify token and check token type"""
    payload = decode_token(token)
    if not payload:
        return None

    if payload.get("token_type") != token_type:
        return None

    return payload
