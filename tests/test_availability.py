"""Tests for availability lookup and the latest-selection view."""

import asyncio
from datetime import UTC, date, datetime
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.clinic_clock import ClinicHours
from clinic_portal.schemas.auth import Actor
from clinic_portal.schemas.availability import DayAvailability
from clinic_portal.services.appointment_service import AppointmentService
from clinic_portal.services.availability_service import AvailabilityService
from clinic_portal.services.availability_view import AvailabilityView

DAY = date(2024, 6, 10)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


@pytest.mark.asyncio
class TestBusySlots:
    """Tests for the busy slot set."""

    async def test_empty_day(self, db_session: AsyncSession, clinic: dict[str, UUID]):
        """Test that a doctor without bookings has no busy slots."""
        service = AvailabilityService(db_session, hours=ClinicHours(), tz=UTC)

        assert await service.busy_slots(clinic["doctor"], DAY) == set()

    async def test_busy_iff_live_appointment(
        self,
        db_session: AsyncSession,
        clinic: dict[str, UUID],
        actors: dict[str, Actor],
    ):
        """Test that only non-cancelled appointments of that doctor and date count."""
        booking = AppointmentService(db_session, hours=ClinicHours(), tz=UTC)
        await booking.create_appointment(clinic["doctor"], clinic["patient"], at(10))
        cancelled = await booking.create_appointment(clinic["doctor"], clinic["patient"], at(11))
        await booking.cancel_appointment(cancelled.id, actors["patient"])
        await booking.create_appointment(clinic["other_doctor"], clinic["patient"], at(12))
        await booking.create_appointment(
            clinic["doctor"], clinic["patient"], at(10, day=date(2024, 6, 11))
        )

        service = AvailabilityService(db_session, hours=ClinicHours(), tz=UTC)
        busy = await service.busy_slots(clinic["doctor"], DAY)

        assert busy == {at(10)}

    async def test_completed_stays_busy(
        self,
        db_session: AsyncSession,
        clinic: dict[str, UUID],
        actors: dict[str, Actor],
    ):
        """Test that a completed visit keeps its slot busy."""
        booking = AppointmentService(db_session, hours=ClinicHours(), tz=UTC)
        appt = await booking.create_appointment(clinic["doctor"], clinic["patient"], at(9, 30))
        await booking.complete_appointment(
            appt.id, actors["doctor"], diagnosis="x", notes="y", medications=[]
        )

        service = AvailabilityService(db_session, hours=ClinicHours(), tz=UTC)

        assert await service.busy_slots(clinic["doctor"], DAY) == {at(9, 30)}


@pytest.mark.asyncio
class TestDayAvailability:
    """Tests for per-slot availability marking."""

    async def test_marks_busy_label(
        self,
        db_session: AsyncSession,
        clinic: dict[str, UUID],
    ):
        """Test that exactly the booked label is busy."""
        booking = AppointmentService(db_session, hours=ClinicHours(), tz=UTC)
        await booking.create_appointment(clinic["doctor"], clinic["patient"], at(10))

        service = AvailabilityService(db_session, hours=ClinicHours(), tz=UTC)
        availability = await service.day_availability(clinic["doctor"], DAY)

        assert len(availability.slots) == 18
        assert availability.busy_labels == ["10:00"]
        assert "10:00" not in availability.available_labels
        assert len(availability.available_labels) == 17

    async def test_cancel_frees_label(
        self,
        db_session: AsyncSession,
        clinic: dict[str, UUID],
        actors: dict[str, Actor],
    ):
        """Test that a cancelled booking shows its label as available again."""
        booking = AppointmentService(db_session, hours=ClinicHours(), tz=UTC)
        appt = await booking.create_appointment(clinic["doctor"], clinic["patient"], at(10))
        await booking.cancel_appointment(appt.id, actors["doctor"])

        service = AvailabilityService(db_session, hours=ClinicHours(), tz=UTC)
        availability = await service.day_availability(clinic["doctor"], DAY)

        assert availability.busy_labels == []

    async def test_labels_in_clinic_zone(
        self,
        db_session: AsyncSession,
        clinic: dict[str, UUID],
    ):
        """Test that busy labels are matched on local wall time."""
        tz = ZoneInfo("Europe/Bucharest")
        booking = AppointmentService(db_session, hours=ClinicHours(), tz=tz)
        # 10:00 in Bucharest is 07:00 UTC in June
        await booking.create_appointment(clinic["doctor"], clinic["patient"], at(7))

        service = AvailabilityService(db_session, hours=ClinicHours(), tz=tz)
        availability = await service.day_availability(clinic["doctor"], DAY)

        assert availability.busy_labels == ["10:00"]
        assert availability.timezone == "Europe/Bucharest"


def make_availability(doctor_id: UUID, day: date, busy: list[str]) -> DayAvailability:
    return DayAvailability.model_validate(
        {
            "doctor_id": doctor_id,
            "day": day,
            "timezone": "UTC",
            "slots": [
                {"label": label, "instant": at(int(label[:2]), int(label[3:]), day), "busy": True}
                for label in busy
            ],
        }
    )


@pytest.mark.asyncio
class TestAvailabilityView:
    """Tests for latest-selection-wins availability loading."""

    async def test_stale_result_discarded(self):
        """Test that a slow answer for an old selection never lands."""
        doctor_1, doctor_2 = uuid4(), uuid4()
        release_first = asyncio.Event()
        started_first = asyncio.Event()

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            if doctor_id == doctor_1:
                started_first.set()
                await release_first.wait()
                return make_availability(doctor_id, day, ["09:00"])
            return make_availability(doctor_id, day, ["11:00"])

        view = AvailabilityView(fetch)
        view.select(doctor_1, DAY)
        await started_first.wait()
        view.select(doctor_2, DAY)
        release_first.set()

        result = await view.wait()

        assert view.key == (doctor_2, DAY)
        assert result is not None
        assert result.doctor_id == doctor_2
        assert view.current.busy_labels == ["11:00"]

    async def test_late_completion_of_old_key_ignored(self):
        """Test that an old fetch which ignores cancellation still cannot overwrite."""
        doctor_1, doctor_2 = uuid4(), uuid4()
        release_first = asyncio.Event()
        started_first = asyncio.Event()

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            if doctor_id == doctor_1:
                started_first.set()
                try:
                    await release_first.wait()
                except asyncio.CancelledError:
                    # Swallow cancellation to simulate a response already in flight
                    pass
                return make_availability(doctor_id, day, ["09:00"])
            return make_availability(doctor_id, day, ["11:00"])

        view = AvailabilityView(fetch)
        first = view.select(doctor_1, DAY)
        await started_first.wait()
        second = view.select(doctor_2, DAY)

        await asyncio.wait({first, second})

        assert view.current is not None
        assert view.current.doctor_id == doctor_2

    async def test_date_change_supersedes(self):
        """Test that changing only the date also invalidates the previous fetch."""
        doctor = uuid4()
        calls: list[date] = []

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            calls.append(day)
            await asyncio.sleep(0)
            return make_availability(doctor_id, day, [])

        view = AvailabilityView(fetch)
        view.select(doctor, DAY)
        view.select(doctor, date(2024, 6, 11))

        result = await view.wait()

        assert result.day == date(2024, 6, 11)
        # The first task was cancelled before it started
        assert calls == [date(2024, 6, 11)]

    async def test_reselect_reuses_inflight(self):
        """Test that selecting the loading key again does not refetch."""
        doctor = uuid4()
        calls = 0

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return make_availability(doctor_id, day, [])

        view = AvailabilityView(fetch)
        first = view.select(doctor, DAY)
        second = view.select(doctor, DAY)
        await view.wait()

        assert first is second
        assert calls == 1

    async def test_refresh_reloads_current_key(self):
        """Test that refresh fetches the selected key again, e.g. after a conflict."""
        doctor = uuid4()
        busy: list[str] = []

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            return make_availability(doctor_id, day, list(busy))

        view = AvailabilityView(fetch)
        view.select(doctor, DAY)
        assert (await view.wait()).busy_labels == []

        busy.append("10:00")
        refreshed = await view.refresh()

        assert refreshed.busy_labels == ["10:00"]

    async def test_refresh_cancels_inflight_fetch(self):
        """Test that a refresh cancels the fetch of the same key still loading."""
        doctor = uuid4()
        started = asyncio.Event()
        calls = 0

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            nonlocal calls
            calls += 1
            if calls == 1:
                started.set()
                await asyncio.Event().wait()
            return make_availability(doctor_id, day, ["10:00"])

        view = AvailabilityView(fetch)
        first = view.select(doctor, DAY)
        await started.wait()

        refreshed = await view.refresh()

        assert refreshed.busy_labels == ["10:00"]
        await asyncio.wait({first})
        assert first.cancelled()

    async def test_refresh_ignores_older_answer_of_same_key(self):
        """Test that an answer started before a refresh cannot overwrite it."""
        doctor = uuid4()
        release_first = asyncio.Event()
        started = asyncio.Event()
        calls = 0

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            nonlocal calls
            calls += 1
            if calls == 1:
                started.set()
                try:
                    await release_first.wait()
                except asyncio.CancelledError:
                    # Response already on its way back
                    await release_first.wait()
                return make_availability(doctor_id, day, [])
            return make_availability(doctor_id, day, ["10:00"])

        view = AvailabilityView(fetch)
        first = view.select(doctor, DAY)
        await started.wait()

        refreshed = await view.refresh()
        assert refreshed.busy_labels == ["10:00"]

        release_first.set()
        await asyncio.wait({first})

        assert first.result().busy_labels == []
        assert view.current.busy_labels == ["10:00"]

    async def test_refresh_without_selection(self):
        """Test that refresh is a no-op before anything was selected."""

        async def fetch(doctor_id: UUID, day: date) -> DayAvailability:
            raise AssertionError("not expected")

        view = AvailabilityView(fetch)

        assert await view.refresh() is None
        assert view.current is None
