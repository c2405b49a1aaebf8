"""
Route guard decisions

Pure checks on a profile that decide which screen a user belongs on
while onboarding is unfinished. A failed check raises ``GuardRedirect``
naming that screen.
"""

from typing import Dict, Any, Optional, Iterable
from fastapi import Request

from app.core.exceptions import AuthenticationError, GuardRedirect
from app.core.security import verify_token

DASHBOARD = "/dashboard"
LOGIN = "/login"

ONBOARDING_ROUTES = {
    "basic": "/onboarding/basic",
    "contact": "/onboarding/contact",
    "done": "/onboarding/done",
}
DETAILS_ROUTES = {
    "doctor": "/onboarding/doctor",
    "patient": "/onboarding/patient",
}
ROLE_ROUTE = "/onboarding/role"


def _value(field) -> Optional[str]:
    return getattr(field, "value", field)


def get_token_payload(request: Request) -> Dict[str, Any]:
    """Extract and validate the bearer access token from the request"""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Authentication required", error_code="auth/not-authenticated")

    token = auth_header.split(" ", 1)[1]
    payload = verify_token(token, "access")
    if not payload:
        raise AuthenticationError("Invalid or expired token", error_code="auth/session-expired")

    return payload


def resolve_onboarding_redirect(profile) -> Optional[str]:
    """Where an unfinished profile must go; None once onboarding is complete"""
    if profile is not None and profile.onboarding_completed:
        return None

    step = _value(profile.onboarding_step) if profile is not None else None
    if step == "details":
        return DETAILS_ROUTES.get(_value(profile.role), ROLE_ROUTE)
    return ONBOARDING_ROUTES.get(step, ROLE_ROUTE)


def landing_for(profile) -> str:
    """Screen a signed-in user should land on"""
    return resolve_onboarding_redirect(profile) or DASHBOARD


def check_onboarding_complete(profile) -> None:
    redirect = resolve_onboarding_redirect(profile)
    if redirect:
        raise GuardRedirect(redirect, "Onboarding not complete")


def check_role(profile, allowed_roles: Iterable[str]) -> None:
    allowed = {_value(r) for r in allowed_roles}
    if _value(profile.role) not in allowed:
        raise GuardRedirect(DASHBOARD, "Role not permitted")


def check_onboarding_pending(profile) -> None:
    """Wizard screens are closed to users who already finished"""
    if profile is not None and profile.onboarding_completed:
        raise GuardRedirect(DASHBOARD, "Onboarding already complete")
