"""
Profiles API Schemas

Pydantic models for profile, onboarding, directory and settings requests
and responses.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import date, datetime
from decimal import Decimal
import uuid

from app.domain.profiles.models import UserRole, SexType, OnboardingStep


# ==================== Profile Schemas ====================

class ProfileSummary(BaseModel):
    """Minimal profile embedded in other payloads"""
    id: uuid.UUID
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None

    class Config:
        from_attributes = True


class ProfileResponse(ProfileSummary):
    birthdate: Optional[date] = None
    sex: Optional[SexType] = None
    onboarding_completed: bool
    onboarding_step: Optional[OnboardingStep] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    birthdate: Optional[date] = None
    sex: Optional[SexType] = None


# ==================== Onboarding Schemas ====================

class RoleSelection(BaseModel):
    role: UserRole


class OnboardingBasic(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    birthdate: Optional[date] = None
    sex: Optional[SexType] = None


class OnboardingContact(BaseModel):
    phone: str = Field(..., min_length=7, max_length=30)


class DoctorDetails(BaseModel):
    specialty: Optional[str] = Field(None, max_length=150)
    clinic_name: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = None
    professional_license: Optional[str] = Field(None, max_length=100)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    consultation_price_mxn: Optional[Decimal] = Field(None, ge=0)
    address_text: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


class DoctorDetailsResponse(DoctorDetails):
    doctor_id: uuid.UUID

    class Config:
        from_attributes = True


class PatientDetails(BaseModel):
    allergies: Optional[str] = None
    blood_type: Optional[str] = Field(None, max_length=5)
    chronic_conditions: Optional[str] = None
    emergency_contact_name: Optional[str] = Field(None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, max_length=30)
    address_text: Optional[str] = None


class PatientDetailsResponse(PatientDetails):
    patient_id: uuid.UUID


# ==================== Directory Schemas ====================

class DoctorListItem(ProfileSummary):
    doctor_profile: Optional[DoctorDetailsResponse] = None


# ==================== Settings Schemas ====================

class SettingsResponse(BaseModel):
    email_notifications: bool
    appointment_reminders: bool
    whatsapp_notifications: bool

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    appointment_reminders: Optional[bool] = None
    whatsapp_notifications: Optional[bool] = None
