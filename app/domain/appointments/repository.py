"""
Appointments Repository Layer

Provides data access operations for appointments. Reads return ``[]`` or
``None`` on failure and mutations return a ``Result``; database errors are
logged and never raised to the caller.
"""

from typing import Optional, List
from datetime import datetime, date, timedelta
from sqlalchemy import or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
import uuid

from app.core.logging import log_error
from app.core.result import Ok, Err, ErrorKind, Result
from app.domain.appointments.models import (
    Appointment, AppointmentStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
)
from app.domain.profiles.models import Profile, UserRole


def party_filter(user_id: uuid.UUID, role: Optional[str]):
    """Restrict to the side of the appointment the user is on"""
    if role == UserRole.PATIENT:
        return Appointment.patient_id == user_id
    if role == UserRole.DOCTOR:
        return Appointment.doctor_id == user_id
    return or_(Appointment.patient_id == user_id, Appointment.doctor_id == user_id)


class AppointmentRepository:
    """Repository for appointment data access operations"""

    def __init__(self, db):
        self.db = db

    def _with_parties(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.doctor).joinedload(Profile.doctor_profile),
            joinedload(Appointment.patient)
        )

    def create(self, appointment_data: dict) -> Result:
        """Create a new appointment"""
        try:
            appointment = Appointment(**appointment_data)
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
            return Ok(appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("create appointment", e)
            return Err(ErrorKind.UNEXPECTED, "create-failed")

    def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Get appointment with doctor and patient profiles embedded"""
        try:
            return self._with_parties().filter(Appointment.id == appointment_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("get appointment", e)
            return None

    def list_in_range(
        self,
        user_id: uuid.UUID,
        role: Optional[str],
        range_start: datetime,
        range_end: datetime
    ) -> List[Appointment]:
        """Appointments with start_at in [range_start, range_end), ascending"""
        try:
            return self._with_parties().filter(
                party_filter(user_id, role),
                Appointment.start_at >= range_start,
                Appointment.start_at < range_end
            ).order_by(Appointment.start_at.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list appointments in range", e)
            return []

    def list_upcoming(
        self,
        user_id: uuid.UUID,
        role: Optional[str],
        now: datetime
    ) -> List[Appointment]:
        """Active appointments that have not started yet"""
        try:
            return self._with_parties().filter(
                party_filter(user_id, role),
                Appointment.start_at >= now,
                Appointment.status.in_(list(ACTIVE_STATUSES))
            ).order_by(Appointment.start_at.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list upcoming appointments", e)
            return []

    def list_past(
        self,
        user_id: uuid.UUID,
        role: Optional[str],
        now: datetime
    ) -> List[Appointment]:
        """Appointments already started or closed, newest first"""
        try:
            return self._with_parties().filter(
                party_filter(user_id, role),
                or_(
                    Appointment.start_at < now,
                    Appointment.status.in_(list(TERMINAL_STATUSES))
                )
            ).order_by(Appointment.start_at.desc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("list past appointments", e)
            return []

    def appointment_days_in_month(
        self,
        user_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime
    ) -> List[str]:
        """Distinct YYYY-MM-DD days holding at least one appointment"""
        try:
            rows = self.db.query(Appointment.start_at).filter(
                party_filter(user_id, None),
                Appointment.start_at >= range_start,
                Appointment.start_at < range_end
            ).order_by(Appointment.start_at.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("appointment days in month", e)
            return []
        days = []
        for (start_at,) in rows:
            key = start_at.date().isoformat()
            if key not in days:
                days.append(key)
        return days

    def doctor_appointments_on(self, doctor_id: uuid.UUID, day: date) -> List[Appointment]:
        """Requested or confirmed appointments of a doctor on one day"""
        day_start = datetime.combine(day, datetime.min.time())
        try:
            return self.db.query(Appointment).filter(
                and_(
                    Appointment.doctor_id == doctor_id,
                    Appointment.start_at >= day_start,
                    Appointment.start_at < day_start + timedelta(days=1),
                    Appointment.status.in_(list(ACTIVE_STATUSES))
                )
            ).order_by(Appointment.start_at.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("doctor appointments on day", e)
            return []

    def update(self, appointment_id: uuid.UUID, update_data: dict) -> Result:
        """Patch an appointment; used for rescheduling and status changes"""
        try:
            appointment = self.db.query(Appointment).filter(
                Appointment.id == appointment_id
            ).first()
            if appointment is None:
                return Err(ErrorKind.NOT_FOUND, "not-found")
            for key, value in update_data.items():
                if hasattr(appointment, key) and value is not None:
                    setattr(appointment, key, value)
            self.db.commit()
            self.db.refresh(appointment)
            return Ok(appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error("update appointment", e)
            return Err(ErrorKind.UNEXPECTED, "update-failed")

    def update_status(self, appointment_id: uuid.UUID, new_status: AppointmentStatus) -> Result:
        """Set the status; repeating the same status is harmless"""
        return self.update(appointment_id, {"status": new_status})

    def cancel(self, appointment_id: uuid.UUID) -> Result:
        return self.update_status(appointment_id, AppointmentStatus.CANCELLED)
