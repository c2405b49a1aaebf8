from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime
import uuid

from app.api.v1.appointments.schemas import AppointmentResponse


class EventBlockResponse(BaseModel):
    """Positioned appointment on the day grid"""
    appointment_id: uuid.UUID
    start_at: datetime
    end_at: datetime
    status: str
    participant: str
    initial: str
    top: float
    height: float
    muted: bool

    class Config:
        from_attributes = True


class DayColumnResponse(BaseModel):
    day: date
    events: List[EventBlockResponse]
    now_offset: Optional[float] = None
    is_empty: bool

    class Config:
        from_attributes = True


class GridMetrics(BaseModel):
    start_hour: int
    hours: int
    px_per_hour: int
    min_height_px: int


class DayViewResponse(BaseModel):
    grid: GridMetrics
    column: DayColumnResponse


class WeekViewResponse(BaseModel):
    grid: GridMetrics
    days: List[DayColumnResponse]


class MonthCellResponse(BaseModel):
    day: date
    in_month: bool
    is_today: bool
    appointments: List[AppointmentResponse]
    overflow: int

    class Config:
        from_attributes = True


class MonthViewResponse(BaseModel):
    year: int
    month: int
    weeks: List[List[MonthCellResponse]]
