"""
Appointments API Routes

API endpoints for booking, listing and changing appointments.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List
from datetime import date, datetime
import uuid

from app.api.deps import CurrentUser, require_onboarding_complete
from app.core.clock import as_utc_naive
from app.core.exceptions import ValidationError
from app.domain.appointments.service import AppointmentService
from app.domain.profiles.models import UserRole
from app.api.v1.appointments.schemas import (
    AppointmentCreate, AppointmentDaysResponse, AppointmentDetailResponse,
    AppointmentReschedule, AppointmentResponse
)
from app.infrastructure.database import get_db

router = APIRouter()


# ==================== Appointment Endpoints ====================

@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: AppointmentCreate,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Request an appointment (patient) or schedule one directly (doctor)"""
    if current_user.role == UserRole.DOCTOR.value:
        if payload.patient_id is None:
            raise ValidationError("patient_id is required when a doctor books")
        patient_id = payload.patient_id
    else:
        patient_id = current_user.id

    return AppointmentService(db).book(
        actor_id=current_user.id,
        doctor_id=payload.doctor_id,
        patient_id=patient_id,
        start_at=as_utc_naive(payload.start_at),
        mode=payload.mode,
        reason=payload.reason,
        symptoms=payload.symptoms,
        location_text=payload.location_text,
    )


@router.get("/", response_model=List[AppointmentResponse])
def list_appointments(
    start: datetime = Query(..., description="Range start (inclusive)"),
    end: datetime = Query(..., description="Range end (exclusive)"),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Appointments starting within [start, end), ascending"""
    return AppointmentService(db).list_in_range(
        current_user.id, current_user.role, as_utc_naive(start), as_utc_naive(end)
    )


@router.get("/upcoming", response_model=List[AppointmentResponse])
def list_upcoming(
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).list_upcoming(current_user.id, current_user.role)


@router.get("/history", response_model=List[AppointmentResponse])
def list_history(
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).list_past(current_user.id, current_user.role)


@router.get("/days", response_model=AppointmentDaysResponse)
def appointment_days(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Days of a month holding at least one appointment"""
    days = AppointmentService(db).appointment_days_in_month(current_user.id, year, month)
    return {"year": year, "month": month, "days": days}


@router.get("/doctor/{doctor_id}/day", response_model=List[AppointmentResponse])
def doctor_day(
    doctor_id: uuid.UUID,
    day: date = Query(...),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    """Booked slots of a doctor on one day, used when picking a time"""
    return AppointmentService(db).doctor_appointments_on(doctor_id, day)


@router.get("/{appointment_id}", response_model=AppointmentDetailResponse)
def get_appointment(
    appointment_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    service = AppointmentService(db)
    appointment = service.get_for_participant(appointment_id, current_user.id)
    return service.summary(appointment, current_user.id)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentReschedule,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).reschedule(
        appointment_id, current_user.id, as_utc_naive(payload.start_at), payload.mode
    )


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).confirm(appointment_id, current_user.id)


@router.post("/{appointment_id}/reject", response_model=AppointmentResponse)
def reject_appointment(
    appointment_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).reject(appointment_id, current_user.id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    return AppointmentService(db).cancel(appointment_id, current_user.id)
