from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC wall-clock time, the representation stored in every table"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_timezone(value: Optional[datetime], tz: Optional[tzinfo]) -> Optional[datetime]:
    """Stored naive UTC as an aware datetime in ``tz``; unchanged without a zone"""
    if value is None or tz is None:
        return value
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


def local_midnight_as_utc(day: date, tz: Optional[tzinfo]) -> datetime:
    """Naive UTC instant at which ``day`` starts for a viewer in ``tz``"""
    midnight = datetime.combine(day, time.min)
    if tz is None:
        return midnight
    return as_utc_naive(midnight.replace(tzinfo=tz))
