# Appointments domain module
from app.domain.appointments.models import (
    Appointment,
    AppointmentStatus,
    VisitMode,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)
from app.domain.appointments.policy import AppointmentAction

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "VisitMode",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "AppointmentAction",
]
