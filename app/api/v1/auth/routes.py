from fastapi import APIRouter, Depends, status

from app.api.deps import CurrentUser, require_authenticated
from app.core.permissions import landing_for
from app.domain.auth.service import AuthService
from app.api.v1.auth.schemas import (
    AccountResponse,
    LandingResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshTokenRequest,
    SignUpRequest,
    TokenResponse,
)
from app.infrastructure.database import get_db

router = APIRouter()

RESET_ACKNOWLEDGEMENT = "Si el correo está registrado, recibirás un enlace para restablecer tu contraseña."


@router.post("/signup", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpRequest, db=Depends(get_db)):
    """Register an account; onboarding starts at role selection"""
    return AuthService(db).sign_up(payload.email, payload.password, payload.full_name)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db=Depends(get_db)):
    """Authenticate user and open a session"""
    return await AuthService(db).sign_in(payload.email, payload.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(payload: RefreshTokenRequest, db=Depends(get_db)):
    """Refresh access token using refresh token"""
    return await AuthService(db).refresh(payload.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    """Close the current session"""
    await AuthService(db).sign_out(current_user.session_id)
    return {"message": "Signed out"}


@router.post("/password-reset", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def request_password_reset(payload: PasswordResetRequest, db=Depends(get_db)):
    AuthService(db).request_password_reset(payload.email)
    return {"message": RESET_ACKNOWLEDGEMENT}


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(payload: PasswordResetConfirm, db=Depends(get_db)):
    await AuthService(db).reset_password(payload.token, payload.new_password)
    return {"message": "Contraseña actualizada"}


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: PasswordChangeRequest,
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    AuthService(db).change_password(current_user.id, payload.current_password, payload.new_password)
    return {"message": "Contraseña actualizada"}


@router.get("/landing", response_model=LandingResponse)
def landing(current_user: CurrentUser = Depends(require_authenticated)):
    """Screen the current user should see next"""
    profile = current_user.profile
    return {
        "redirect_to": landing_for(profile),
        "onboarding_completed": bool(profile.onboarding_completed),
        "role": current_user.role,
    }
