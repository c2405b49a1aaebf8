from datetime import date, datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo
import uuid

import pytest
from httpx import AsyncClient

from app.domain.appointments.models import AppointmentStatus
from app.domain.profiles.models import OnboardingStep
from app.domain.calendar.layout import (
    GRID_HEIGHT_PX, MIN_HEIGHT_PX, build_month_grid, height_for, layout_day,
    layout_week, month_range, now_line_offset, offset_for, week_start_of
)

VIEWER = uuid.uuid4()
OTHER = uuid.uuid4()
# UTC-6 all year
MEXICO_CITY = ZoneInfo("America/Mexico_City")


def appointment(start_at, minutes=60, status=AppointmentStatus.CONFIRMED, patient_name="Ana López",
                doctor_name="Dr. Gómez"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        doctor_id=VIEWER,
        patient_id=OTHER,
        start_at=start_at,
        end_at=start_at + timedelta(minutes=minutes),
        status=status,
        doctor=SimpleNamespace(full_name=doctor_name),
        patient=SimpleNamespace(full_name=patient_name) if patient_name else None,
    )


@pytest.mark.unit
class TestDayGrid:
    """Test block placement on the day grid."""

    def test_half_hour_block(self):
        block = layout_day(
            [appointment(datetime(2030, 6, 3, 9, 0), minutes=30)],
            date(2030, 6, 3), VIEWER, datetime(2030, 6, 1, 12, 0)
        ).events[0]

        assert block.top == 160
        assert block.height == 40

    def test_short_block_gets_minimum_height(self):
        start = datetime(2030, 6, 3, 8, 0)
        assert height_for(start, start + timedelta(minutes=10)) == MIN_HEIGHT_PX
        assert height_for(start, start + timedelta(minutes=90)) == 120

    def test_offsets(self):
        assert offset_for(datetime(2030, 6, 3, 7, 0)) == 0
        assert offset_for(datetime(2030, 6, 3, 23, 0)) == GRID_HEIGHT_PX

    def test_early_block_is_clamped_to_top(self):
        column = layout_day([appointment(datetime(2030, 6, 3, 6, 0))], date(2030, 6, 3), VIEWER,
                            datetime(2030, 6, 1))
        assert column.events[0].top == 0

    def test_participant_depends_on_viewer(self):
        item = appointment(datetime(2030, 6, 3, 10, 0))
        day = date(2030, 6, 3)
        now = datetime(2030, 6, 1)

        as_doctor = layout_day([item], day, VIEWER, now).events[0]
        as_patient = layout_day([item], day, OTHER, now).events[0]

        assert (as_doctor.participant, as_doctor.initial) == ("Ana López", "A")
        assert (as_patient.participant, as_patient.initial) == ("Dr. Gómez", "D")

    def test_missing_participant_shows_placeholder(self):
        item = appointment(datetime(2030, 6, 3, 10, 0), patient_name=None)
        block = layout_day([item], date(2030, 6, 3), VIEWER, datetime(2030, 6, 1)).events[0]
        assert block.participant == "?"

    def test_cancelled_and_rejected_are_muted(self):
        day = date(2030, 6, 3)
        items = [
            appointment(datetime(2030, 6, 3, 9), status=AppointmentStatus.CANCELLED),
            appointment(datetime(2030, 6, 3, 11), status=AppointmentStatus.REJECTED),
            appointment(datetime(2030, 6, 3, 13), status=AppointmentStatus.REQUESTED),
        ]

        blocks = layout_day(items, day, VIEWER, datetime(2030, 6, 1)).events

        assert [b.muted for b in blocks] == [True, True, False]
        assert [b.status for b in blocks] == ["cancelled", "rejected", "requested"]

    def test_only_the_day_in_start_order(self):
        day = date(2030, 6, 3)
        items = [
            appointment(datetime(2030, 6, 3, 15)),
            appointment(datetime(2030, 6, 4, 9)),
            appointment(datetime(2030, 6, 3, 8)),
        ]

        column = layout_day(items, day, VIEWER, datetime(2030, 6, 1))

        assert [b.start_at.hour for b in column.events] == [8, 15]
        assert not column.is_empty
        assert layout_day([], day, VIEWER, datetime(2030, 6, 1)).is_empty


@pytest.mark.unit
class TestNowLine:
    """Test the current-time line."""

    def test_today_inside_grid(self):
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 10, 30)) == 280

    def test_other_day(self):
        assert now_line_offset(date(2030, 6, 4), datetime(2030, 6, 3, 10, 30)) is None

    def test_outside_grid_hours(self):
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 6, 59)) is None
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 23, 30)) is None

    def test_grid_edges_have_no_line(self):
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 7, 0)) is None
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 23, 0)) is None
        assert now_line_offset(date(2030, 6, 3), datetime(2030, 6, 3, 7, 1)) is not None

    def test_follows_viewer_time_zone(self):
        now = datetime(2030, 6, 4, 1, 0)

        column = layout_day([], date(2030, 6, 3), VIEWER, now, MEXICO_CITY)

        assert column.now_offset == 960
        assert layout_day([], date(2030, 6, 3), VIEWER, now).now_offset is None


@pytest.mark.unit
class TestViewerTimeZone:
    """Test placement for viewers outside UTC."""

    def test_evening_appointment_stays_on_local_day(self):
        # 18:00 in Mexico City is midnight UTC of the next day
        item = appointment(datetime(2030, 6, 4, 0, 0))

        column = layout_day([item], date(2030, 6, 3), VIEWER, datetime(2030, 6, 1), MEXICO_CITY)

        assert len(column.events) == 1
        assert column.events[0].top == 880
        assert column.events[0].start_at.hour == 18
        assert layout_day([item], date(2030, 6, 3), VIEWER, datetime(2030, 6, 1)).is_empty

    def test_week_column(self):
        days = layout_week([appointment(datetime(2030, 6, 6, 2, 0))], date(2030, 6, 3), VIEWER,
                           datetime(2030, 6, 1), MEXICO_CITY)

        assert [len(d.events) for d in days] == [0, 0, 1, 0, 0, 0, 0]

    def test_month_bucket(self):
        weeks = build_month_grid(2030, 6, [appointment(datetime(2030, 6, 13, 3, 0))], tz=MEXICO_CITY)
        cells = {c.day: c for week in weeks for c in week}

        assert len(cells[date(2030, 6, 12)].appointments) == 1
        assert cells[date(2030, 6, 13)].appointments == []


@pytest.mark.unit
class TestWeekAndMonth:
    """Test week columns and the month grid."""

    def test_week_starts_on_monday(self):
        assert week_start_of(date(2030, 6, 6)) == date(2030, 6, 3)
        assert week_start_of(date(2030, 6, 3)) == date(2030, 6, 3)

        days = layout_week([appointment(datetime(2030, 6, 5, 9))], date(2030, 6, 8), VIEWER,
                           datetime(2030, 6, 1))

        assert [d.day for d in days][0] == date(2030, 6, 3)
        assert len(days) == 7
        assert [len(d.events) for d in days] == [0, 0, 1, 0, 0, 0, 0]

    def test_month_range_covers_whole_weeks(self):
        start, end = month_range(2030, 6)

        assert start == date(2030, 5, 27)
        assert end == date(2030, 7, 1)
        assert (end - start).days % 7 == 0

    def test_month_cells_overflow(self):
        items = [appointment(datetime(2030, 6, 12, hour)) for hour in (9, 11, 13, 15)]

        weeks = build_month_grid(2030, 6, items, today=date(2030, 6, 12))
        cell = next(c for week in weeks for c in week if c.day == date(2030, 6, 12))

        assert len(cell.appointments) == 2
        assert cell.overflow == 2
        assert [a.start_at.hour for a in cell.appointments] == [9, 11]
        assert cell.is_today
        assert cell.in_month

    def test_leading_days_are_outside_month(self):
        weeks = build_month_grid(2030, 6, [])

        assert weeks[0][0].day == date(2030, 5, 27)
        assert not weeks[0][0].in_month
        assert all(len(week) == 7 for week in weeks)


@pytest.mark.integration
@pytest.mark.asyncio
class TestCalendarEndpoints:
    """Test calendar views over HTTP."""

    async def test_week_view(self, client: AsyncClient, doctor, patient_headers):
        await client.post("/api/v1/appointments/", headers=patient_headers, json={
            "doctor_id": str(doctor.id), "start_at": "2031-03-05T09:00:00",
        })

        response = await client.get("/api/v1/calendar/week", headers=patient_headers,
                                    params={"day": "2031-03-07"})

        assert response.status_code == 200
        data = response.json()
        assert data["grid"]["px_per_hour"] == 80
        assert [d["day"] for d in data["days"]][0] == "2031-03-03"
        wednesday = data["days"][2]
        assert wednesday["is_empty"] is False
        assert wednesday["events"][0]["participant"] == "Dra. Marta Ruiz"
        assert wednesday["events"][0]["top"] == 160

    async def test_month_view(self, client: AsyncClient, doctor, patient_headers):
        for hour in (9, 11, 13):
            await client.post("/api/v1/appointments/", headers=patient_headers, json={
                "doctor_id": str(doctor.id), "start_at": f"2031-03-10T{hour:02d}:00:00",
            })

        response = await client.get("/api/v1/calendar/month", headers=patient_headers,
                                    params={"year": 2031, "month": 3})

        assert response.status_code == 200
        cells = [c for week in response.json()["weeks"] for c in week]
        cell = next(c for c in cells if c["day"] == "2031-03-10")
        assert len(cell["appointments"]) == 2
        assert cell["overflow"] == 1

    async def test_day_view_requires_onboarding(self, client: AsyncClient, make_user, login):
        profile = make_user("incompleto@example.com", onboarded=False, onboarding_step=OnboardingStep.BASIC)
        headers, _ = await login(profile)

        response = await client.get("/api/v1/calendar/day", headers=headers, params={"day": "2031-03-10"})

        assert response.status_code == 403

    async def test_day_view_in_viewer_time_zone(self, client: AsyncClient, doctor, patient_headers):
        await client.post("/api/v1/appointments/", headers=patient_headers, json={
            "doctor_id": str(doctor.id), "start_at": "2031-03-06T00:30:00Z",
        })

        local = await client.get("/api/v1/calendar/day", headers=patient_headers,
                                 params={"day": "2031-03-05", "tz": "America/Mexico_City"})
        utc = await client.get("/api/v1/calendar/day", headers=patient_headers,
                               params={"day": "2031-03-05"})

        assert local.status_code == 200
        events = local.json()["column"]["events"]
        assert len(events) == 1
        assert events[0]["top"] == 920
        assert events[0]["start_at"].startswith("2031-03-05T18:30:00")
        assert utc.json()["column"]["is_empty"] is True

    async def test_unknown_time_zone(self, client: AsyncClient, patient_headers):
        response = await client.get("/api/v1/calendar/day", headers=patient_headers,
                                    params={"day": "2031-03-05", "tz": "Mars/Olympus_Mons"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "invalid-timezone"
