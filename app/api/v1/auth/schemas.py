from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
import uuid


class SignUpRequest(BaseModel):
    """Schema for account registration"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: Optional[str] = Field(None, max_length=200)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not any(c.isdigit() for c in v):
            raise ValueError('Password must contain at least one digit')
        if not any(c.isalpha() for c in v):
            raise ValueError('Password must contain at least one letter')
        return v


class LoginRequest(BaseModel):
    """Schema for login request"""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Schema for token response"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    session_id: str
    user_id: uuid.UUID
    role: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator('new_password')
    @classmethod
    def validate_password(cls, v):
        if not any(c.isdigit() for c in v):
            raise ValueError('Password must contain at least one digit')
        if not any(c.isalpha() for c in v):
            raise ValueError('Password must contain at least one letter')
        return v


class PasswordChangeRequest(BaseModel):
    """Schema for password change"""
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class AccountResponse(BaseModel):
    """Schema for the registered account"""
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None

    class Config:
        from_attributes = True


class LandingResponse(BaseModel):
    """Screen the current user should be sent to"""
    redirect_to: str
    onboarding_completed: bool
    role: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
