"""
Profiles Repository Layer

Provides data access operations for profiles, doctor/patient details,
care links and user settings.
"""

from typing import Optional, List, Iterable
from sqlalchemy import or_, func
from sqlalchemy.orm import joinedload
import uuid

from app.domain.profiles.models import (
    Profile, DoctorProfile, PatientProfile, CareLink, CareLinkStatus,
    UserSettings, UserRole
)


class ProfileRepository:
    """Repository for profile data access operations"""

    def __init__(self, db):
        self.db = db

    def create(self, profile_data: dict) -> Profile:
        profile = Profile(**profile_data)
        self.db.add(profile)
        self.db.flush()
        return profile

    def get_by_id(self, profile_id: uuid.UUID) -> Optional[Profile]:
        """Get profile by ID"""
        return self.db.query(Profile).filter(Profile.id == profile_id).first()

    def get_by_email(self, email: str) -> Optional[Profile]:
        """Case-insensitive lookup by e-mail"""
        return self.db.query(Profile).filter(
            func.lower(Profile.email) == email.strip().lower()
        ).first()

    def get_many(self, profile_ids: Iterable[uuid.UUID]) -> List[Profile]:
        ids = list(profile_ids)
        if not ids:
            return []
        return self.db.query(Profile).filter(Profile.id.in_(ids)).all()

    def update(self, profile: Profile, update_data: dict) -> Profile:
        """Apply a partial update; explicit None values clear the column"""
        for key, value in update_data.items():
            if hasattr(profile, key):
                setattr(profile, key, value)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def get_doctor(self, doctor_id: uuid.UUID) -> Optional[Profile]:
        """Doctor profile with professional details"""
        return self.db.query(Profile).options(
            joinedload(Profile.doctor_profile)
        ).filter(
            Profile.id == doctor_id,
            Profile.role == UserRole.DOCTOR
        ).first()

    def list_doctors(self, limit: int = 50) -> List[Profile]:
        return self.db.query(Profile).options(
            joinedload(Profile.doctor_profile)
        ).filter(
            Profile.role == UserRole.DOCTOR
        ).order_by(Profile.full_name).limit(limit).all()

    def search_doctors(self, term: str, limit: int = 20) -> List[Profile]:
        """Match doctor name, specialty or clinic"""
        pattern = f"%{term.strip()}%"
        return self.db.query(Profile).outerjoin(
            DoctorProfile, DoctorProfile.doctor_id == Profile.id
        ).options(
            joinedload(Profile.doctor_profile)
        ).filter(
            Profile.role == UserRole.DOCTOR,
            or_(
                Profile.full_name.ilike(pattern),
                DoctorProfile.specialty.ilike(pattern),
                DoctorProfile.clinic_name.ilike(pattern),
            )
        ).order_by(Profile.full_name).limit(limit).all()

    def search_patients(self, term: str, limit: int = 20) -> List[Profile]:
        pattern = f"%{term.strip()}%"
        return self.db.query(Profile).filter(
            Profile.role == UserRole.PATIENT,
            or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern))
        ).order_by(Profile.full_name).limit(limit).all()


class DoctorProfileRepository:
    """Repository for doctor detail records"""

    def __init__(self, db):
        self.db = db

    def get(self, doctor_id: uuid.UUID) -> Optional[DoctorProfile]:
        return self.db.query(DoctorProfile).filter(DoctorProfile.doctor_id == doctor_id).first()

    def upsert(self, doctor_id: uuid.UUID, data: dict) -> DoctorProfile:
        record = self.get(doctor_id)
        if record is None:
            record = DoctorProfile(doctor_id=doctor_id)
            self.db.add(record)
        for key, value in data.items():
            if hasattr(record, key):
                setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)
        return record


class PatientProfileRepository:
    """Repository for patient detail records"""

    def __init__(self, db):
        self.db = db

    def get(self, patient_id: uuid.UUID) -> Optional[PatientProfile]:
        return self.db.query(PatientProfile).filter(PatientProfile.patient_id == patient_id).first()

    def upsert(self, patient_id: uuid.UUID, data: dict) -> PatientProfile:
        record = self.get(patient_id)
        if record is None:
            record = PatientProfile(patient_id=patient_id)
            self.db.add(record)
        for key, value in data.items():
            if hasattr(record, key):
                setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)
        return record


class CareLinkRepository:
    """Repository for doctor/patient care links"""

    def __init__(self, db):
        self.db = db

    def get(self, doctor_id: uuid.UUID, patient_id: uuid.UUID) -> Optional[CareLink]:
        return self.db.query(CareLink).filter(
            CareLink.doctor_id == doctor_id,
            CareLink.patient_id == patient_id
        ).first()

    def ensure(self, doctor_id: uuid.UUID, patient_id: uuid.UUID, created_by: uuid.UUID) -> CareLink:
        """Create an active link or reactivate an existing one"""
        link = self.get(doctor_id, patient_id)
        if link is None:
            link = CareLink(
                doctor_id=doctor_id,
                patient_id=patient_id,
                created_by=created_by,
                status=CareLinkStatus.ACTIVE.value,
            )
            self.db.add(link)
        elif link.status != CareLinkStatus.ACTIVE.value:
            link.status = CareLinkStatus.ACTIVE.value
        self.db.commit()
        return link

    def active_doctor_ids(self, patient_id: uuid.UUID) -> List[uuid.UUID]:
        rows = self.db.query(CareLink.doctor_id).filter(
            CareLink.patient_id == patient_id,
            CareLink.status == CareLinkStatus.ACTIVE.value
        ).all()
        return [row[0] for row in rows]


class UserSettingsRepository:
    """Repository for notification preferences"""

    def __init__(self, db):
        self.db = db

    def get(self, user_id: uuid.UUID) -> Optional[UserSettings]:
        return self.db.query(UserSettings).filter(UserSettings.user_id == user_id).first()

    def get_or_create(self, user_id: uuid.UUID) -> UserSettings:
        """Read settings, inserting the defaults row when missing"""
        record = self.get(user_id)
        if record is None:
            record = UserSettings(
                user_id=user_id,
                email_notifications=True,
                appointment_reminders=True,
                whatsapp_notifications=False,
            )
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        return record

    def update(self, user_id: uuid.UUID, update_data: dict) -> UserSettings:
        record = self.get_or_create(user_id)
        for key, value in update_data.items():
            if hasattr(record, key) and value is not None:
                setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)
        return record
