"""
Appointments Domain Models

Implements the database model for doctor/patient appointments and the
status and visit-mode enumerations.
"""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, Enum, JSON, CheckConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.infrastructure.database import Base
import uuid
import enum


class AppointmentStatus(str, enum.Enum):
    """Appointment status enumeration"""
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    NO_SHOW = "no_show"


class VisitMode(str, enum.Enum):
    """How the visit takes place"""
    IN_PERSON = "in_person"
    VIDEO = "video"
    PHONE = "phone"


# No further actions are offered once an appointment reaches one of these
TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.NO_SHOW,
})

ACTIVE_STATUSES = frozenset({
    AppointmentStatus.REQUESTED,
    AppointmentStatus.CONFIRMED,
})


class Appointment(Base):
    """Appointment model for patient-doctor appointments"""
    __tablename__ = "appointments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Patient and doctor
    doctor_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    patient_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)

    # Scheduling
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)

    status = Column(
        Enum(AppointmentStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False, default=AppointmentStatus.REQUESTED
    )
    mode = Column(
        Enum(VisitMode, values_callable=lambda e: [m.value for m in e]),
        nullable=False, default=VisitMode.IN_PERSON
    )

    # Visit details
    reason = Column(Text)
    symptoms = Column(Text)
    location_text = Column(String(500))
    location = Column(JSON)

    # Audit
    created_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    doctor = relationship("Profile", foreign_keys=[doctor_id])
    patient = relationship("Profile", foreign_keys=[patient_id])

    __table_args__ = (
        CheckConstraint('end_at > start_at', name='check_appointment_time_order'),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
