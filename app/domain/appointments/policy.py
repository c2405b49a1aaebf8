"""
Appointment lifecycle rules

Pure functions deciding which actions a viewer may take on an appointment
and what a reschedule produces. Nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
import enum
import uuid

from app.domain.appointments.models import (
    Appointment, AppointmentStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
)

APPOINTMENT_DURATION = timedelta(minutes=60)


class AppointmentAction(str, enum.Enum):
    """Buttons offered on the appointment detail screen"""
    CONFIRM = "confirm"
    REJECT = "reject"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"
    MESSAGE = "message"


class RescheduleRejected(Exception):
    """The requested slot cannot be used"""

    def __init__(self, message: str, code: str = "reschedule/past-date"):
        self.message = message
        self.code = code
        super().__init__(message)


@dataclass(frozen=True)
class ReschedulePlan:
    start_at: datetime
    end_at: datetime
    mode: str
    status: AppointmentStatus

    def as_update(self) -> dict:
        return {
            "start_at": self.start_at,
            "end_at": self.end_at,
            "mode": self.mode,
            "status": self.status,
        }


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_upcoming(appointment: Appointment, now: datetime) -> bool:
    return appointment.start_at > now


def is_doctor(appointment: Appointment, user_id: uuid.UUID) -> bool:
    return appointment.doctor_id == user_id


def is_patient(appointment: Appointment, user_id: uuid.UUID) -> bool:
    return appointment.patient_id == user_id


def available_actions(appointment: Appointment, viewer_id: uuid.UUID, now: datetime) -> List[AppointmentAction]:
    """Actions the viewer may take right now"""
    if not (is_doctor(appointment, viewer_id) or is_patient(appointment, viewer_id)):
        return []
    if not is_upcoming(appointment, now) or appointment.status not in ACTIVE_STATUSES:
        return []

    actions = []
    if appointment.status == AppointmentStatus.REQUESTED and is_doctor(appointment, viewer_id):
        actions.extend([AppointmentAction.CONFIRM, AppointmentAction.REJECT])
    actions.extend([AppointmentAction.MESSAGE, AppointmentAction.RESCHEDULE])
    if is_patient(appointment, viewer_id):
        actions.append(AppointmentAction.CANCEL)
    return actions


def initial_status(doctor_id: uuid.UUID, actor_id: uuid.UUID) -> AppointmentStatus:
    """A doctor booking confirms directly; anyone else requests"""
    if actor_id == doctor_id:
        return AppointmentStatus.CONFIRMED
    return AppointmentStatus.REQUESTED


def plan_reschedule(
    appointment: Appointment,
    actor_id: uuid.UUID,
    new_start: datetime,
    now: datetime,
    new_mode: Optional[str] = None
) -> ReschedulePlan:
    """Compute the update for a reschedule or raise ``RescheduleRejected``"""
    if new_start <= now:
        raise RescheduleRejected("No puedes reprogramar una cita a una fecha u hora pasada")

    return ReschedulePlan(
        start_at=new_start,
        end_at=new_start + APPOINTMENT_DURATION,
        mode=new_mode or appointment.mode,
        status=initial_status(appointment.doctor_id, actor_id),
    )


def counterpart_of(appointment: Appointment, actor_id: uuid.UUID) -> uuid.UUID:
    """The party that did not perform the action"""
    if actor_id == appointment.doctor_id:
        return appointment.patient_id
    return appointment.doctor_id
