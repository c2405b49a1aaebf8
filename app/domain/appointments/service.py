"""
Appointments Service Layer

Business logic for booking, rescheduling, confirming, rejecting and
cancelling appointments. Every mutation re-fetches the appointment from the
database afterwards and notifies the counterpart party.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, date, timedelta
import calendar
import uuid

from loguru import logger

from app.core.clock import utcnow
from app.core.exceptions import (
    NotFoundError, AuthorizationError, ConflictError, ValidationError, DatabaseError
)
from app.domain.appointments.models import (
    Appointment, AppointmentStatus, VisitMode, ACTIVE_STATUSES
)
from app.domain.appointments.policy import (
    APPOINTMENT_DURATION, AppointmentAction, RescheduleRejected,
    available_actions, counterpart_of, initial_status, is_doctor,
    is_patient, plan_reschedule
)
from app.domain.appointments.repository import AppointmentRepository
from app.domain.notifications.models import NotificationType
from app.domain.notifications.service import NotificationService
from app.domain.profiles.models import UserRole
from app.domain.profiles.repository import ProfileRepository, CareLinkRepository

ENTITY_TABLE = "appointments"

STATUS_NOTIFICATIONS = {
    AppointmentStatus.CONFIRMED: (NotificationType.APPOINTMENT_CONFIRMED, "Cita confirmada"),
    AppointmentStatus.REJECTED: (NotificationType.APPOINTMENT_REJECTED, "Cita rechazada"),
    AppointmentStatus.CANCELLED: (NotificationType.APPOINTMENT_CANCELLED, "Cita cancelada"),
}


def format_slot(start_at: datetime) -> str:
    return start_at.strftime("%d/%m/%Y %H:%M")


class AppointmentService:
    """Service layer for the appointment lifecycle"""

    def __init__(self, db, notifications: Optional[NotificationService] = None):
        self.db = db
        self.appointment_repo = AppointmentRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.care_link_repo = CareLinkRepository(db)
        self.notifications = notifications or NotificationService(db)

    # ==================== Reads ====================

    def get_for_participant(self, appointment_id: uuid.UUID, user_id: uuid.UUID) -> Appointment:
        """Fetch an appointment the user takes part in"""
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found", error_code="not-found")
        if not (is_doctor(appointment, user_id) or is_patient(appointment, user_id)):
            raise AuthorizationError("Not a participant of this appointment")
        return appointment

    def actions_for(self, appointment: Appointment, user_id: uuid.UUID,
                    now: Optional[datetime] = None) -> List[AppointmentAction]:
        return available_actions(appointment, user_id, now or utcnow())

    def list_in_range(self, user_id: uuid.UUID, role: Optional[str],
                      range_start: datetime, range_end: datetime) -> List[Appointment]:
        return self.appointment_repo.list_in_range(user_id, role, range_start, range_end)

    def list_upcoming(self, user_id: uuid.UUID, role: Optional[str],
                      now: Optional[datetime] = None) -> List[Appointment]:
        return self.appointment_repo.list_upcoming(user_id, role, now or utcnow())

    def list_past(self, user_id: uuid.UUID, role: Optional[str],
                  now: Optional[datetime] = None) -> List[Appointment]:
        return self.appointment_repo.list_past(user_id, role, now or utcnow())

    def appointment_days_in_month(self, user_id: uuid.UUID, year: int, month: int) -> List[str]:
        first = datetime(year, month, 1)
        after_last = first + timedelta(days=calendar.monthrange(year, month)[1])
        return self.appointment_repo.appointment_days_in_month(user_id, first, after_last)

    def doctor_appointments_on(self, doctor_id: uuid.UUID, day: date) -> List[Appointment]:
        return self.appointment_repo.doctor_appointments_on(doctor_id, day)

    # ==================== Mutations ====================

    def book(
        self,
        actor_id: uuid.UUID,
        doctor_id: uuid.UUID,
        patient_id: uuid.UUID,
        start_at: datetime,
        mode: VisitMode = VisitMode.IN_PERSON,
        reason: Optional[str] = None,
        symptoms: Optional[str] = None,
        location_text: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Appointment:
        """Create an appointment lasting the standard duration"""
        now = now or utcnow()
        if actor_id not in (doctor_id, patient_id):
            raise AuthorizationError("Appointments can only be booked by a participant")
        if start_at <= now:
            raise ValidationError("La cita debe programarse en el futuro")

        doctor = self.profile_repo.get_by_id(doctor_id)
        if doctor is None or doctor.role != UserRole.DOCTOR:
            raise NotFoundError("Doctor not found")
        patient = self.profile_repo.get_by_id(patient_id)
        if patient is None or patient.role != UserRole.PATIENT:
            raise NotFoundError("Patient not found")

        status = initial_status(doctor_id, actor_id)
        result = self.appointment_repo.create({
            "doctor_id": doctor_id,
            "patient_id": patient_id,
            "start_at": start_at,
            "end_at": start_at + APPOINTMENT_DURATION,
            "status": status,
            "mode": mode,
            "reason": reason,
            "symptoms": symptoms,
            "location_text": location_text if mode == VisitMode.IN_PERSON else None,
            "created_by": actor_id,
        })
        if not result.success:
            raise DatabaseError(result.error, error_code="create-failed")

        appointment = result.value
        self.care_link_repo.ensure(doctor_id, patient_id, created_by=actor_id)

        if status == AppointmentStatus.REQUESTED:
            self._notify(
                appointment, actor_id, NotificationType.APPOINTMENT_REQUESTED,
                "Nueva solicitud de cita", f"Solicitud para el {format_slot(start_at)}"
            )
        else:
            self._notify(
                appointment, actor_id, NotificationType.APPOINTMENT_CONFIRMED,
                "Cita confirmada", f"Cita agendada para el {format_slot(start_at)}"
            )
        return self.appointment_repo.get_by_id(appointment.id)

    def reschedule(
        self,
        appointment_id: uuid.UUID,
        actor_id: uuid.UUID,
        new_start: datetime,
        new_mode: Optional[VisitMode] = None,
        now: Optional[datetime] = None
    ) -> Appointment:
        """Move an upcoming appointment; the actor's role sets the new status"""
        now = now or utcnow()
        appointment = self.get_for_participant(appointment_id, actor_id)
        if AppointmentAction.RESCHEDULE not in available_actions(appointment, actor_id, now):
            raise ConflictError("This appointment can no longer be rescheduled")

        try:
            plan = plan_reschedule(appointment, actor_id, new_start, now, new_mode)
        except RescheduleRejected as e:
            raise ValidationError(e.message, error_code=e.code)

        result = self.appointment_repo.update(appointment.id, plan.as_update())
        if not result.success:
            raise DatabaseError(result.error, error_code="update-failed")

        self._notify(
            appointment, actor_id, NotificationType.APPOINTMENT_RESCHEDULED,
            "Cita reprogramada", f"La cita fue movida a {format_slot(plan.start_at)}"
        )
        return self.appointment_repo.get_by_id(appointment.id)

    def confirm(self, appointment_id: uuid.UUID, actor_id: uuid.UUID,
                now: Optional[datetime] = None) -> Appointment:
        return self._doctor_decision(appointment_id, actor_id, AppointmentAction.CONFIRM,
                                     AppointmentStatus.CONFIRMED, now)

    def reject(self, appointment_id: uuid.UUID, actor_id: uuid.UUID,
               now: Optional[datetime] = None) -> Appointment:
        return self._doctor_decision(appointment_id, actor_id, AppointmentAction.REJECT,
                                     AppointmentStatus.REJECTED, now)

    def cancel(self, appointment_id: uuid.UUID, actor_id: uuid.UUID,
               now: Optional[datetime] = None) -> Appointment:
        """Patient cancels an upcoming, still active appointment"""
        appointment = self.get_for_participant(appointment_id, actor_id)
        if AppointmentAction.CANCEL not in available_actions(appointment, actor_id, now or utcnow()):
            raise ConflictError("This appointment cannot be cancelled")
        return self._apply_status(appointment, actor_id, AppointmentStatus.CANCELLED)

    def _doctor_decision(self, appointment_id, actor_id, action, new_status, now) -> Appointment:
        appointment = self.get_for_participant(appointment_id, actor_id)
        if not is_doctor(appointment, actor_id):
            raise AuthorizationError("Only the doctor can confirm or reject")
        if action not in available_actions(appointment, actor_id, now or utcnow()):
            raise ConflictError(f"Appointment is {appointment.status.value}, expected requested")
        return self._apply_status(appointment, actor_id, new_status)

    def _apply_status(self, appointment: Appointment, actor_id: uuid.UUID,
                      new_status: AppointmentStatus) -> Appointment:
        result = self.appointment_repo.update_status(appointment.id, new_status)
        if not result.success:
            raise DatabaseError(result.error, error_code="update-failed")

        notification_type, title = STATUS_NOTIFICATIONS[new_status]
        self._notify(
            appointment, actor_id, notification_type, title,
            f"Cita del {format_slot(appointment.start_at)}"
        )
        return self.appointment_repo.get_by_id(appointment.id)

    def _notify(self, appointment: Appointment, actor_id: uuid.UUID,
                notification_type: str, title: str, body: str) -> None:
        """Tell the other party; a failure is logged and the mutation stands"""
        result = self.notifications.notify(
            user_id=counterpart_of(appointment, actor_id),
            type=notification_type,
            title=title,
            body=body,
            entity_table=ENTITY_TABLE,
            entity_id=appointment.id,
        )
        if not result.success:
            logger.warning(f"Notification '{notification_type}' was not stored: {result.error}")

    def summary(self, appointment: Appointment, viewer_id: uuid.UUID) -> Dict[str, Any]:
        """Detail payload with the actions available to the viewer"""
        return {
            "appointment": appointment,
            "actions": [a.value for a in self.actions_for(appointment, viewer_id)],
            "is_active": appointment.status in ACTIVE_STATUSES,
        }
