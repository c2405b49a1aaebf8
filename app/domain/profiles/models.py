"""
Profiles Domain Models

Implements the database models for:
- User profiles with role and onboarding progress
- Doctor and patient detail records
- Care links between doctors and patients
- Per-user notification settings
"""

from sqlalchemy import (
    Column, String, Date, Boolean, DateTime, ForeignKey,
    Integer, Numeric, Text, Enum, JSON, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.infrastructure.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """Role of a portal user"""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class SexType(str, enum.Enum):
    """Sex recorded on the profile"""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNSPECIFIED = "unspecified"


class OnboardingStep(str, enum.Enum):
    """Checkpoints of the onboarding wizard"""
    BASIC = "basic"
    CONTACT = "contact"
    DETAILS = "details"
    DONE = "done"


class CareLinkStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Profile(Base):
    """Portal user profile; id matches the login account"""
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), ForeignKey("user_accounts.id", ondelete="CASCADE"), primary_key=True)
    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
                  nullable=False, default=UserRole.PATIENT)

    full_name = Column(String(200))
    email = Column(String(255), index=True)
    phone = Column(String(30))
    avatar_url = Column(String(500))
    birthdate = Column(Date)
    sex = Column(Enum(SexType, values_callable=lambda e: [m.value for m in e]))

    # Onboarding progress
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    onboarding_step = Column(Enum(OnboardingStep, values_callable=lambda e: [m.value for m in e]))

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    doctor_profile = relationship("DoctorProfile", uselist=False, back_populates="profile")
    patient_profile = relationship("PatientProfile", uselist=False, back_populates="profile")


class DoctorProfile(Base):
    """Professional details for doctors"""
    __tablename__ = "doctor_profiles"

    doctor_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    specialty = Column(String(150))
    clinic_name = Column(String(200))
    bio = Column(Text)
    professional_license = Column(String(100))
    years_experience = Column(Integer)
    consultation_price_mxn = Column(Numeric(10, 2))
    address_text = Column(Text)
    location = Column(JSON)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    profile = relationship("Profile", back_populates="doctor_profile")


class PatientProfile(Base):
    """Clinical details for patients; clinical text columns hold ciphertext"""
    __tablename__ = "patient_profiles"

    patient_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    allergies = Column(Text)
    blood_type = Column(Text)
    chronic_conditions = Column(Text)
    emergency_contact_name = Column(String(200))
    emergency_contact_phone = Column(String(30))
    address_text = Column(Text)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    profile = relationship("Profile", back_populates="patient_profile")


class CareLink(Base):
    """Association between a patient and a doctor outside appointment history"""
    __tablename__ = "care_links"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=CareLinkStatus.ACTIVE.value)
    created_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("doctor_id", "patient_id", name="uq_care_link_pair"),
    )


class UserSettings(Base):
    """Notification preferences"""
    __tablename__ = "user_settings"

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    email_notifications = Column(Boolean, default=True, nullable=False)
    appointment_reminders = Column(Boolean, default=True, nullable=False)
    whatsapp_notifications = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
