"""
Profiles API Routes

API endpoints for the caller's profile, the onboarding wizard, the doctor
and patient directories, and notification settings.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from typing import List
import uuid

from app.api.deps import (
    CurrentUser, get_storage_backend, only_onboarding, require_authenticated,
    require_onboarding_complete, require_roles
)
from app.core.exceptions import AuthorizationError, NotFoundError
from app.domain.profiles.models import UserRole
from app.domain.profiles.service import ProfileService, SettingsService
from app.api.v1.profiles.schemas import (
    DoctorDetails, DoctorDetailsResponse, DoctorListItem, OnboardingBasic,
    OnboardingContact, PatientDetails, PatientDetailsResponse, ProfileResponse,
    ProfileSummary, ProfileUpdate, RoleSelection, SettingsResponse, SettingsUpdate
)
from app.infrastructure.database import get_db

router = APIRouter()


# ==================== Profile Endpoints ====================

@router.get("/me", response_model=ProfileResponse)
def get_my_profile(current_user: CurrentUser = Depends(require_authenticated)):
    return current_user.profile


@router.patch("/me", response_model=ProfileResponse)
def update_my_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    return ProfileService(db).update_my_profile(current_user.id, payload.model_dump(exclude_unset=True))


@router.post("/me/avatar", response_model=ProfileResponse)
def upload_avatar(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_authenticated),
    storage=Depends(get_storage_backend),
    db=Depends(get_db)
):
    """Replace the avatar image (JPEG, PNG or WEBP up to 2 MB)"""
    return ProfileService(db).upload_avatar(
        current_user.id, file.filename or "avatar", file.content_type, file.file.read(), storage
    )


# ==================== Onboarding Endpoints ====================

@router.post("/onboarding/role", response_model=ProfileResponse)
def choose_role(
    payload: RoleSelection,
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).set_role(current_user.id, payload.role)


@router.post("/onboarding/basic", response_model=ProfileResponse)
def save_basic(
    payload: OnboardingBasic,
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).save_basic(current_user.id, payload.model_dump(exclude_unset=True))


@router.post("/onboarding/contact", response_model=ProfileResponse)
def save_contact(
    payload: OnboardingContact,
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).save_contact(current_user.id, payload.phone)


@router.post("/onboarding/doctor", response_model=DoctorDetailsResponse)
def save_doctor_details(
    payload: DoctorDetails,
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).save_doctor_details(current_user.id, payload.model_dump(exclude_unset=True))


@router.post("/onboarding/patient", response_model=PatientDetailsResponse)
def save_patient_details(
    payload: PatientDetails,
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).save_patient_details(current_user.id, payload.model_dump(exclude_unset=True))


@router.post("/onboarding/complete", response_model=ProfileResponse)
def complete_onboarding(
    current_user: CurrentUser = Depends(only_onboarding),
    db=Depends(get_db)
):
    return ProfileService(db).complete_onboarding(current_user.id)


# ==================== Directory Endpoints ====================

@router.get("/doctors", response_model=List[DoctorListItem])
def list_doctors(
    q: str = Query("", max_length=100),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """All doctors, or those matching name, specialty or clinic"""
    service = ProfileService(db)
    if q.strip():
        return service.search_doctors(q)
    return service.list_doctors()


@router.get("/doctors/{doctor_id}", response_model=DoctorListItem)
def get_doctor(
    doctor_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    doctor = ProfileService(db).get_doctor(doctor_id)
    if doctor is None:
        raise NotFoundError("Doctor not found")
    return doctor


@router.get("/my-doctors", response_model=List[DoctorListItem])
def my_doctors(
    current_user: CurrentUser = Depends(require_roles(UserRole.PATIENT)),
    db=Depends(get_db)
):
    return ProfileService(db).get_patient_doctors(current_user.id)


@router.get("/my-patients", response_model=List[ProfileSummary])
def my_patients(
    current_user: CurrentUser = Depends(require_roles(UserRole.DOCTOR)),
    db=Depends(get_db)
):
    return ProfileService(db).list_doctor_patients(current_user.id)


@router.get("/patients", response_model=List[ProfileSummary])
def search_patients(
    q: str = Query(..., min_length=1, max_length=100),
    current_user: CurrentUser = Depends(require_roles(UserRole.DOCTOR)),
    db=Depends(get_db)
):
    return ProfileService(db).search_patients(q)


@router.get("/patients/{patient_id}/details", response_model=PatientDetailsResponse)
def get_patient_details(
    patient_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    service = ProfileService(db)
    if not service.can_view_patient(current_user.id, patient_id):
        raise AuthorizationError("Not allowed to view this patient")
    details = service.get_patient_details(patient_id)
    if details is None:
        raise NotFoundError("Patient details not found")
    return details


# ==================== Settings Endpoints ====================

@router.get("/settings", response_model=SettingsResponse)
def get_settings(
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    return SettingsService(db).get_my_settings(current_user.id)


@router.patch("/settings", response_model=SettingsResponse)
def update_settings(
    payload: SettingsUpdate,
    current_user: CurrentUser = Depends(require_authenticated),
    db=Depends(get_db)
):
    return SettingsService(db).update_my_settings(current_user.id, payload.model_dump(exclude_unset=True))
