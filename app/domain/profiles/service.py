"""
Profiles Service Layer

Business logic for the onboarding wizard, profile edits, doctor and patient
directories, and notification settings.
"""

from typing import Optional, List, Dict, Any
import uuid
import logging

from app.core.errors import validate_file
from app.core.exceptions import NotFoundError, ValidationError, ConflictError
from app.infrastructure.encryption import EncryptionManager, encryption_manager
from app.infrastructure.storage import StorageBackend, build_avatar_path
from app.domain.profiles.models import (
    Profile, PatientProfile, DoctorProfile, UserSettings,
    UserRole, OnboardingStep
)
from app.domain.profiles.repository import (
    ProfileRepository, DoctorProfileRepository, PatientProfileRepository,
    CareLinkRepository, UserSettingsRepository
)
from app.domain.appointments.models import Appointment
from app.domain.chat.models import ConversationParticipant

logger = logging.getLogger(__name__)

# Fields a user may change on their own profile
EDITABLE_PROFILE_FIELDS = {"full_name", "phone", "avatar_url", "birthdate", "sex"}


class ProfileService:
    """Service layer for profile and onboarding management"""

    def __init__(self, db, encryption: Optional[EncryptionManager] = None):
        self.db = db
        self.profile_repo = ProfileRepository(db)
        self.doctor_repo = DoctorProfileRepository(db)
        self.patient_repo = PatientProfileRepository(db)
        self.care_link_repo = CareLinkRepository(db)
        self.encryption = encryption or encryption_manager

    def get_my_profile(self, user_id: uuid.UUID) -> Profile:
        """Get the caller's profile"""
        profile = self.profile_repo.get_by_id(user_id)
        if not profile:
            raise NotFoundError("Profile not found")
        return profile

    def update_my_profile(self, user_id: uuid.UUID, updates: Dict[str, Any]) -> Profile:
        """Update editable profile fields"""
        profile = self.get_my_profile(user_id)
        allowed = {k: v for k, v in updates.items() if k in EDITABLE_PROFILE_FIELDS}
        return self.profile_repo.update(profile, allowed)

    # ==================== Onboarding ====================

    def set_role(self, user_id: uuid.UUID, role: UserRole) -> Profile:
        """First wizard step: pick patient or doctor"""
        if role == UserRole.ADMIN:
            raise ValidationError("Admin role cannot be self-assigned")
        profile = self.get_my_profile(user_id)
        return self.profile_repo.update(profile, {
            "role": role,
            "onboarding_step": OnboardingStep.BASIC,
        })

    def save_basic(self, user_id: uuid.UUID, data: Dict[str, Any]) -> Profile:
        profile = self.get_my_profile(user_id)
        updates = {k: v for k, v in data.items() if k in ("full_name", "birthdate", "sex")}
        updates["onboarding_step"] = OnboardingStep.CONTACT
        return self.profile_repo.update(profile, updates)

    def save_contact(self, user_id: uuid.UUID, phone: str) -> Profile:
        """Contact step; doctors and patients continue to details, others finish"""
        profile = self.get_my_profile(user_id)
        next_step = (
            OnboardingStep.DETAILS
            if profile.role in (UserRole.DOCTOR, UserRole.PATIENT)
            else OnboardingStep.DONE
        )
        return self.profile_repo.update(profile, {
            "phone": phone,
            "onboarding_step": next_step,
        })

    def save_doctor_details(self, user_id: uuid.UUID, data: Dict[str, Any]) -> DoctorProfile:
        profile = self.get_my_profile(user_id)
        if profile.role != UserRole.DOCTOR:
            raise ConflictError("Only doctors have professional details")
        record = self.doctor_repo.upsert(user_id, data)
        self.profile_repo.update(profile, {"onboarding_step": OnboardingStep.DONE})
        return record

    def save_patient_details(self, user_id: uuid.UUID, data: Dict[str, Any]) -> Dict[str, Any]:
        profile = self.get_my_profile(user_id)
        if profile.role != UserRole.PATIENT:
            raise ConflictError("Only patients have clinical details")
        record = self.patient_repo.upsert(user_id, self.encryption.encrypt_dict(data))
        self.profile_repo.update(profile, {"onboarding_step": OnboardingStep.DONE})
        return self._decrypt_patient(record)

    def complete_onboarding(self, user_id: uuid.UUID) -> Profile:
        profile = self.get_my_profile(user_id)
        return self.profile_repo.update(profile, {
            "onboarding_completed": True,
            "onboarding_step": None,
        })

    def upload_avatar(
        self,
        user_id: uuid.UUID,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        storage: StorageBackend
    ) -> Profile:
        """Store a new avatar image and point the profile at it"""
        error = validate_file(content_type, len(data), kind="avatar")
        if error:
            raise ValidationError(error, error_code="upload-failed")
        profile = self.get_my_profile(user_id)
        path = build_avatar_path(user_id, filename)
        storage.upload(path, data, content_type, private=False)
        return self.profile_repo.update(profile, {"avatar_url": storage.public_url(path)})

    # ==================== Directories ====================

    def get_doctor(self, doctor_id: uuid.UUID) -> Optional[Profile]:
        return self.profile_repo.get_doctor(doctor_id)

    def list_doctors(self, limit: int = 50) -> List[Profile]:
        return self.profile_repo.list_doctors(limit)

    def search_doctors(self, term: str) -> List[Profile]:
        if not term or not term.strip():
            return []
        return self.profile_repo.search_doctors(term)

    def get_patient_doctors(self, patient_id: uuid.UUID) -> List[Profile]:
        """Doctors on the patient's care team"""
        doctor_ids = self.care_link_repo.active_doctor_ids(patient_id)
        return [d for d in (self.profile_repo.get_doctor(i) for i in doctor_ids) if d]

    def list_doctor_patients(self, doctor_id: uuid.UUID) -> List[Profile]:
        """Patients known to a doctor through appointments or conversations"""
        from_appointments = {
            row[0] for row in self.db.query(Appointment.patient_id).filter(
                Appointment.doctor_id == doctor_id,
                Appointment.patient_id.isnot(None)
            ).distinct().limit(200).all()
        }

        my_conversations = self.db.query(ConversationParticipant.conversation_id).filter(
            ConversationParticipant.user_id == doctor_id
        )
        from_chat = {
            row[0] for row in self.db.query(ConversationParticipant.user_id).filter(
                ConversationParticipant.conversation_id.in_(my_conversations),
                ConversationParticipant.user_id != doctor_id
            ).all()
        }

        patients = self.profile_repo.get_many(from_appointments | from_chat)
        return sorted(
            (p for p in patients if p.role == UserRole.PATIENT),
            key=lambda p: (p.full_name or "").lower()
        )

    def search_patients(self, term: str) -> List[Profile]:
        if not term or not term.strip():
            return []
        return self.profile_repo.search_patients(term)

    def can_view_patient(self, viewer_id: uuid.UUID, patient_id: uuid.UUID) -> bool:
        """The patient, or a doctor linked by care link or appointment history"""
        if viewer_id == patient_id:
            return True
        if self.care_link_repo.get(viewer_id, patient_id) is not None:
            return True
        return self.db.query(Appointment.id).filter(
            Appointment.doctor_id == viewer_id,
            Appointment.patient_id == patient_id
        ).first() is not None

    def get_patient_details(self, patient_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        record = self.patient_repo.get(patient_id)
        if record is None:
            return None
        return self._decrypt_patient(record)

    def _decrypt_patient(self, record: PatientProfile) -> Dict[str, Any]:
        data = {
            column.name: getattr(record, column.name)
            for column in PatientProfile.__table__.columns
        }
        for key in list(data):
            if self.encryption.should_encrypt_field(key):
                data[key] = self.encryption.decrypt_data(data[key])
        return data


class SettingsService:
    """Service layer for notification preferences"""

    def __init__(self, db):
        self.db = db
        self.settings_repo = UserSettingsRepository(db)

    def get_my_settings(self, user_id: uuid.UUID) -> UserSettings:
        return self.settings_repo.get_or_create(user_id)

    def update_my_settings(self, user_id: uuid.UUID, updates: Dict[str, Any]) -> UserSettings:
        return self.settings_repo.update(user_id, updates)
