# Profiles domain module
from app.domain.profiles.models import (
    Profile,
    DoctorProfile,
    PatientProfile,
    CareLink,
    CareLinkStatus,
    UserSettings,
    UserRole,
    SexType,
    OnboardingStep,
)

__all__ = [
    "Profile",
    "DoctorProfile",
    "PatientProfile",
    "CareLink",
    "CareLinkStatus",
    "UserSettings",
    "UserRole",
    "SexType",
    "OnboardingStep",
]
