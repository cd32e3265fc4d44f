"""Availability service: busy slots of a doctor on a date."""

from datetime import date, datetime, tzinfo
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.clinic_clock import (
    ClinicHours,
    ensure_utc,
    get_clinic_hours,
    get_clinic_timezone,
)
from clinic_portal.core.slots import day_bounds, generate_slots, slot_instant
from clinic_portal.models.appointments import appointments
from clinic_portal.schemas.appointments import AppointmentStatus
from clinic_portal.schemas.availability import DayAvailability, SlotStatus

logger = structlog.get_logger()


class AvailabilityService:
    """Service computing busy and available slots."""

    def __init__(
        self,
        db: AsyncSession,
        hours: ClinicHours | None = None,
        tz: tzinfo | None = None,
    ):
        """Initialize service with database session and clinic schedule."""
        self.db = db
        self.hours = hours or get_clinic_hours()
        self.tz = tz or get_clinic_timezone()

    async def busy_slots(self, doctor_id: UUID, day: date) -> set[datetime]:
        """
        Get the instants a doctor is already booked on a date.

        Args:
            doctor_id: Doctor ID
            day: Calendar date in the clinic time zone

        Returns:
            UTC instants of the doctor's non-cancelled appointments that day.
            Empty when the lookup fails.
        """
        start, end = day_bounds(day, self.tz)
        stmt = select(appointments.c.appointment_at).where(
            and_(
                appointments.c.doctor_id == doctor_id,
                appointments.c.appointment_at >= start,
                appointments.c.appointment_at < end,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
        )

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.warning(
                "availability_lookup_failed",
                doctor_id=str(doctor_id),
                day=day.isoformat(),
                error=str(e),
            )
            return set()

        return {ensure_utc(value) for value in result.scalars().all()}

    async def day_availability(self, doctor_id: UUID, day: date) -> DayAvailability:
        """
        Mark each slot of the day busy or available for a doctor.

        A slot is busy only when an appointment sits at exactly its instant.
        """
        busy = await self.busy_slots(doctor_id, day)

        slots = []
        for label in generate_slots(self.hours):
            instant = slot_instant(day, label, self.tz)
            slots.append(SlotStatus(label=label, instant=instant, busy=instant in busy))

        return DayAvailability(
            doctor_id=doctor_id,
            day=day,
            timezone=str(self.tz),
            slots=slots,
        )
