"""
Calendar Layout

Places appointments on the day, week and month grids. The day grid spans
07:00 to 23:00 in 16 hourly rows; a block's offset and height are
proportional to minutes, with a floor so short visits stay legible.
Everything here is pure. Stored times are naive UTC; given the viewer's
time zone, blocks, day buckets and the now-line follow local wall time.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable, List, Optional
import uuid

from app.core.clock import to_timezone
from app.domain.appointments.models import AppointmentStatus

START_HOUR = 7
HOURS = 16
PX_PER_HOUR = 80
MIN_HEIGHT_PX = 40
GRID_HEIGHT_PX = HOURS * PX_PER_HOUR

MONTH_INLINE_LIMIT = 2
UNKNOWN_PARTICIPANT = "?"

# Shown for history but visually muted
MUTED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED})


@dataclass
class EventBlock:
    appointment_id: uuid.UUID
    start_at: datetime
    end_at: datetime
    status: str
    participant: str
    initial: str
    top: float
    height: float
    muted: bool = False


@dataclass
class DayColumn:
    day: date
    events: List[EventBlock] = field(default_factory=list)
    now_offset: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.events


@dataclass
class MonthCell:
    day: date
    in_month: bool
    is_today: bool = False
    appointments: List[Any] = field(default_factory=list)
    overflow: int = 0


def minutes_from_grid_start(moment: datetime) -> float:
    grid_start = moment.replace(hour=START_HOUR, minute=0, second=0, microsecond=0)
    return (moment - grid_start).total_seconds() / 60


def offset_for(moment: datetime) -> float:
    """Pixels from the top of the grid"""
    return minutes_from_grid_start(moment) * PX_PER_HOUR / 60


def height_for(start_at: datetime, end_at: datetime) -> float:
    minutes = (end_at - start_at).total_seconds() / 60
    return max(minutes * PX_PER_HOUR / 60, MIN_HEIGHT_PX)


def now_line_offset(day: date, now: datetime) -> Optional[float]:
    """Offset of the current-time line, only for today and inside the grid"""
    if now.date() != day:
        return None
    offset = offset_for(now)
    if not 0 < offset < GRID_HEIGHT_PX:
        return None
    return offset


def participant_name(appointment: Any, viewer_id: Optional[uuid.UUID]) -> str:
    """Name of the other party as seen by the viewer"""
    if viewer_id is not None and appointment.doctor_id == viewer_id:
        other = appointment.patient
    else:
        other = appointment.doctor
    name = getattr(other, "full_name", None) if other is not None else None
    return name or UNKNOWN_PARTICIPANT


def status_value(appointment: Any) -> str:
    return getattr(appointment.status, "value", appointment.status)


def place(appointment: Any, viewer_id: Optional[uuid.UUID], tz: Optional[tzinfo] = None) -> EventBlock:
    name = participant_name(appointment, viewer_id)
    start_at = to_timezone(appointment.start_at, tz)
    end_at = to_timezone(appointment.end_at, tz)
    return EventBlock(
        appointment_id=appointment.id,
        start_at=start_at,
        end_at=end_at,
        status=status_value(appointment),
        participant=name,
        initial=name[0].upper(),
        top=max(offset_for(start_at), 0),
        height=height_for(start_at, end_at),
        muted=appointment.status in MUTED_STATUSES,
    )


def local_day(appointment: Any, tz: Optional[tzinfo] = None) -> date:
    return to_timezone(appointment.start_at, tz).date()


def layout_day(appointments: Iterable[Any], day: date, viewer_id: Optional[uuid.UUID],
               now: datetime, tz: Optional[tzinfo] = None) -> DayColumn:
    """Blocks for the appointments starting on ``day`` in the viewer's zone, in start order"""
    todays = sorted(
        (a for a in appointments if local_day(a, tz) == day),
        key=lambda a: a.start_at
    )
    return DayColumn(
        day=day,
        events=[place(a, viewer_id, tz) for a in todays],
        now_offset=now_line_offset(day, to_timezone(now, tz)),
    )


def week_start_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def layout_week(appointments: Iterable[Any], week_start: date, viewer_id: Optional[uuid.UUID],
                now: datetime, tz: Optional[tzinfo] = None) -> List[DayColumn]:
    """Seven Monday-first columns"""
    monday = week_start_of(week_start)
    appointments = list(appointments)
    return [
        layout_day(appointments, monday + timedelta(days=i), viewer_id, now, tz)
        for i in range(7)
    ]


def month_range(year: int, month: int):
    """First visible Monday and the day after the last visible Sunday"""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return week_start_of(first), week_start_of(last) + timedelta(days=7)


def build_month_grid(year: int, month: int, appointments: Iterable[Any],
                     today: Optional[date] = None, tz: Optional[tzinfo] = None) -> List[List[MonthCell]]:
    """Weeks of cells covering the month, appointments bucketed by day"""
    by_day = {}
    for appointment in sorted(appointments, key=lambda a: a.start_at):
        by_day.setdefault(local_day(appointment, tz), []).append(appointment)

    start, end = month_range(year, month)
    weeks = []
    day = start
    while day < end:
        week = []
        for _ in range(7):
            bucket = by_day.get(day, [])
            week.append(MonthCell(
                day=day,
                in_month=day.month == month,
                is_today=day == today,
                appointments=bucket[:MONTH_INLINE_LIMIT],
                overflow=max(len(bucket) - MONTH_INLINE_LIMIT, 0),
            ))
            day += timedelta(days=1)
        weeks.append(week)
    return weeks
