"""Tests for calendar aggregation."""

from datetime import UTC, date, datetime
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from clinic_portal.schemas.appointments import AppointmentResponse, AppointmentStatus
from clinic_portal.services.calendar_service import (
    aggregate_by_day,
    day_drilldown,
    leading_blanks,
    month_grid,
)


def make_appointment(at: datetime) -> AppointmentResponse:
    return AppointmentResponse(
        id=uuid4(),
        doctor_id=uuid4(),
        patient_id=uuid4(),
        appointment_at=at,
        status=AppointmentStatus.SCHEDULED,
        created_at=at,
        updated_at=at,
    )


@pytest.fixture
def march_visit() -> AppointmentResponse:
    """A 2024-03-15 09:00 appointment."""
    return make_appointment(datetime(2024, 3, 15, 9, 0, tzinfo=UTC))


class TestAggregateByDay:
    """Tests for month aggregation."""

    def test_appointment_lands_on_its_day_only(self, march_visit):
        """Test that an appointment is counted on exactly one day."""
        buckets = aggregate_by_day([march_visit], 2024, 3, UTC)

        assert list(buckets) == [15]
        assert buckets[15] == [march_visit]

    def test_other_months_ignored(self, march_visit):
        """Test that appointments outside the month are dropped."""
        assert aggregate_by_day([march_visit], 2024, 4, UTC) == {}
        assert aggregate_by_day([march_visit], 2023, 3, UTC) == {}

    def test_days_cut_in_clinic_zone(self):
        """Test that a late-evening UTC instant falls on the next local day."""
        appt = make_appointment(datetime(2024, 3, 15, 23, 30, tzinfo=UTC))

        assert list(aggregate_by_day([appt], 2024, 3, UTC)) == [15]
        assert list(aggregate_by_day([appt], 2024, 3, ZoneInfo("Europe/Bucharest"))) == [16]

    def test_idempotent(self, march_visit):
        """Test that aggregating the same input twice gives the same result."""
        other = make_appointment(datetime(2024, 3, 15, 10, 0, tzinfo=UTC))

        first = aggregate_by_day([march_visit, other], 2024, 3, UTC)
        second = aggregate_by_day([march_visit, other], 2024, 3, UTC)

        assert first == second
        assert len(first[15]) == 2


class TestMonthGrid:
    """Tests for the month grid summary."""

    def test_leading_blanks_march_2024(self):
        """Test that March 2024 starts on a Friday."""
        assert leading_blanks(2024, 3) == 5

    @pytest.mark.parametrize(
        ("year", "month", "expected"),
        [
            (2024, 9, 0),  # starts on Sunday
            (2024, 4, 1),  # Monday
            (2024, 6, 6),  # Saturday
        ],
    )
    def test_leading_blanks_sunday_first(self, year: int, month: int, expected: int):
        """Test the Sunday-first offset for other months."""
        assert leading_blanks(year, month) == expected

    def test_grid_markers(self, march_visit):
        """Test event, today and selection markers."""
        grid = month_grid(
            [march_visit],
            2024,
            3,
            UTC,
            today=date(2024, 3, 20),
            selected_day=15,
        )

        assert grid.days_in_month == 31
        assert grid.leading_blanks == 5
        assert len(grid.days) == 31

        by_day = {cell.day: cell for cell in grid.days}
        assert by_day[15].has_event and by_day[15].count == 1
        assert by_day[15].is_selected
        assert by_day[20].is_today and not by_day[20].has_event
        assert [cell.day for cell in grid.days if cell.has_event] == [15]

    def test_leap_february(self):
        """Test month length in a leap year."""
        grid = month_grid([], 2024, 2, UTC, today=date(2024, 3, 1))

        assert grid.days_in_month == 29
        assert not any(cell.is_today for cell in grid.days)


class TestDayDrilldown:
    """Tests for the day drill-down."""

    def test_lists_day_appointments(self, march_visit):
        """Test that only appointments of the requested day are listed."""
        other_day = make_appointment(datetime(2024, 3, 16, 9, 0, tzinfo=UTC))

        drilldown = day_drilldown([march_visit, other_day], 2024, 3, 15, UTC)

        assert [a.id for a in drilldown.items] == [march_visit.id]

    def test_empty_day(self, march_visit):
        """Test a day without appointments."""
        assert day_drilldown([march_visit], 2024, 3, 14, UTC).items == []

    def test_invalid_day(self):
        """Test that a day outside the month is rejected."""
        with pytest.raises(ValueError):
            day_drilldown([], 2024, 2, 30, UTC)
