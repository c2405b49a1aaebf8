"""
Appointments API Schemas

Pydantic models for appointment-related API requests and responses.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid

from app.domain.appointments.models import AppointmentStatus, VisitMode
from app.domain.appointments.policy import AppointmentAction


class ParticipantSummary(BaseModel):
    """Profile fields embedded in an appointment"""
    id: uuid.UUID
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment; the end time is derived"""
    doctor_id: uuid.UUID
    patient_id: Optional[uuid.UUID] = Field(None, description="Required when a doctor books")
    start_at: datetime
    mode: VisitMode = VisitMode.IN_PERSON
    reason: Optional[str] = Field(None, max_length=1000)
    symptoms: Optional[str] = Field(None, max_length=2000)
    location_text: Optional[str] = Field(None, max_length=500)


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment"""
    start_at: datetime
    mode: Optional[VisitMode] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""
    id: uuid.UUID
    doctor_id: uuid.UUID
    patient_id: uuid.UUID
    start_at: datetime
    end_at: datetime
    status: AppointmentStatus
    mode: VisitMode
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    location_text: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    doctor: Optional[ParticipantSummary] = None
    patient: Optional[ParticipantSummary] = None

    class Config:
        from_attributes = True


class AppointmentDetailResponse(BaseModel):
    """Appointment together with the actions the viewer may take"""
    appointment: AppointmentResponse
    actions: List[AppointmentAction]
    is_active: bool


class AppointmentDaysResponse(BaseModel):
    year: int
    month: int
    days: List[str]
