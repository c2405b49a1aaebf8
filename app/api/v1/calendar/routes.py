"""
Calendar API Routes

Day, week and month layouts of the caller's appointments, laid out in the
viewer's time zone (``tz``, an IANA name, UTC when omitted).
"""

from fastapi import APIRouter, Depends, Query
from datetime import date, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.api.deps import CurrentUser, require_onboarding_complete
from app.core.clock import local_midnight_as_utc, to_timezone, utcnow
from app.core.exceptions import ValidationError
from app.domain.appointments.service import AppointmentService
from app.domain.calendar.layout import (
    HOURS, MIN_HEIGHT_PX, PX_PER_HOUR, START_HOUR,
    build_month_grid, layout_day, layout_week, month_range, week_start_of
)
from app.api.v1.calendar.schemas import (
    DayColumnResponse, DayViewResponse, MonthCellResponse, MonthViewResponse, WeekViewResponse
)
from app.infrastructure.database import get_db

router = APIRouter()

GRID = {
    "start_hour": START_HOUR,
    "hours": HOURS,
    "px_per_hour": PX_PER_HOUR,
    "min_height_px": MIN_HEIGHT_PX,
}


def viewer_timezone(
    tz: str = Query("UTC", description="IANA time zone of the viewer, e.g. America/Mexico_City")
) -> tzinfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError("Unknown time zone", details={"tz": tz}, error_code="invalid-timezone")


@router.get("/day", response_model=DayViewResponse)
def day_view(
    day: date = Query(...),
    zone: tzinfo = Depends(viewer_timezone),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    appointments = AppointmentService(db).list_in_range(
        current_user.id, current_user.role,
        local_midnight_as_utc(day, zone), local_midnight_as_utc(day + timedelta(days=1), zone)
    )
    column = layout_day(appointments, day, current_user.id, utcnow(), zone)
    return DayViewResponse(grid=GRID, column=DayColumnResponse.model_validate(column))


@router.get("/week", response_model=WeekViewResponse)
def week_view(
    day: date = Query(..., description="Any day of the week to show"),
    zone: tzinfo = Depends(viewer_timezone),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    monday = week_start_of(day)
    appointments = AppointmentService(db).list_in_range(
        current_user.id, current_user.role,
        local_midnight_as_utc(monday, zone), local_midnight_as_utc(monday + timedelta(days=7), zone)
    )
    days = layout_week(appointments, monday, current_user.id, utcnow(), zone)
    return WeekViewResponse(grid=GRID, days=[DayColumnResponse.model_validate(d) for d in days])


@router.get("/month", response_model=MonthViewResponse)
def month_view(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    zone: tzinfo = Depends(viewer_timezone),
    current_user: CurrentUser = Depends(require_onboarding_complete),
    db=Depends(get_db)
):
    first_visible, after_last = month_range(year, month)
    appointments = AppointmentService(db).list_in_range(
        current_user.id, current_user.role,
        local_midnight_as_utc(first_visible, zone), local_midnight_as_utc(after_last, zone)
    )
    weeks = build_month_grid(year, month, appointments,
                             today=to_timezone(utcnow(), zone).date(), tz=zone)
    return MonthViewResponse(
        year=year,
        month=month,
        weeks=[[MonthCellResponse.model_validate(cell) for cell in week] for week in weeks],
    )
