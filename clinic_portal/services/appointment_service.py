"""Appointment service: booking, lifecycle transitions and listing."""

from datetime import UTC, datetime, tzinfo
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.clinic_clock import (
    ClinicHours,
    ensure_utc,
    get_clinic_hours,
    get_clinic_timezone,
    utc_now,
)
from clinic_portal.core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)
from clinic_portal.core.slots import is_on_grid
from clinic_portal.models.appointments import appointments
from clinic_portal.models.consultations import consultations, prescriptions
from clinic_portal.models.departments import departments
from clinic_portal.models.doctors import doctors
from clinic_portal.models.users import users
from clinic_portal.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    ConsultationResponse,
    DoctorParty,
    MedicationEntry,
    Party,
)
from clinic_portal.schemas.auth import Actor
from clinic_portal.services.role_projection import can_view, project

logger = structlog.get_logger()

SLOT_INDEX_NAME = "uq_appointments_doctor_slot_active"

patient_user = users.alias("patient_user")
doctor_user = users.alias("doctor_user")


def _is_slot_conflict(exc: IntegrityError) -> bool:
    """Tell a live-slot uniqueness violation apart from other integrity errors."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return SLOT_INDEX_NAME in message or (
        "UNIQUE constraint failed" in message and "appointments.appointment_at" in message
    )


def _optional_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


class AppointmentService:
    """Service for managing appointments."""

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

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _joined_select(self) -> Any:
        """Appointments joined with patient and doctor display data."""
        return select(
            appointments,
            patient_user.c.full_name.label("patient_name"),
            doctor_user.c.full_name.label("doctor_name"),
            doctors.c.specialization.label("doctor_specialization"),
            departments.c.name.label("department_name"),
        ).select_from(
            appointments.outerjoin(patient_user, patient_user.c.id == appointments.c.patient_id)
            .outerjoin(doctors, doctors.c.id == appointments.c.doctor_id)
            .outerjoin(doctor_user, doctor_user.c.id == appointments.c.doctor_id)
            .outerjoin(departments, departments.c.id == doctors.c.department_id)
        )

    @staticmethod
    def _to_response(row: Any) -> AppointmentResponse:
        """Build a response from a joined appointment row."""
        data = row._mapping
        return AppointmentResponse(
            id=data["id"],
            doctor_id=data["doctor_id"],
            patient_id=data["patient_id"],
            appointment_at=ensure_utc(data["appointment_at"]),
            status=AppointmentStatus(data["status"]),
            created_at=ensure_utc(data["created_at"]),
            updated_at=ensure_utc(data["updated_at"]),
            cancelled_at=_optional_utc(data["cancelled_at"]),
            completed_at=_optional_utc(data["completed_at"]),
            patient=Party(id=data["patient_id"], full_name=data["patient_name"]),
            doctor=DoctorParty(
                id=data["doctor_id"],
                full_name=data["doctor_name"],
                department=data["department_name"],
                specialization=data["doctor_specialization"],
            ),
        )

    async def _fetch(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Load one appointment with party details.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = self._joined_select().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return self._to_response(row)

    async def _load_consultation(self, appointment_id: UUID) -> ConsultationResponse | None:
        """Load the consultation payload and its ordered medications."""
        result = await self.db.execute(
            select(consultations).where(consultations.c.appointment_id == appointment_id)
        )
        consultation = result.mappings().first()
        if not consultation:
            return None

        meds_result = await self.db.execute(
            select(prescriptions.c.medication, prescriptions.c.dosage)
            .where(prescriptions.c.consultation_id == consultation["id"])
            .order_by(prescriptions.c.position)
        )

        return ConsultationResponse(
            id=consultation["id"],
            diagnosis=consultation["diagnosis"],
            notes=consultation["notes"],
            medications=[
                MedicationEntry(medication=m["medication"], dosage=m["dosage"])
                for m in meds_result.mappings().all()
            ],
            created_at=ensure_utc(consultation["created_at"]),
        )

    async def get_appointment(self, appointment_id: UUID, actor: Actor) -> AppointmentResponse:
        """
        Get appointment by ID, shaped for the caller.

        Args:
            appointment_id: Appointment ID
            actor: Requesting user

        Returns:
            Appointment details, with the consultation once completed

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not a party to it
        """
        appointment = await self._fetch(appointment_id)

        if not can_view(appointment, actor.role, actor.id):
            raise ForbiddenException("Access denied to this appointment")

        if appointment.status == AppointmentStatus.COMPLETED:
            appointment.consultation = await self._load_consultation(appointment_id)

        return project([appointment], actor.role, actor.id)[0]

    async def list_all(self) -> list[AppointmentResponse]:
        """Every appointment, newest slot first. Only for role projection."""
        stmt = self._joined_select().order_by(appointments.c.appointment_at.desc())
        result = await self.db.execute(stmt)
        return [self._to_response(row) for row in result.fetchall()]

    async def list_for(self, actor: Actor) -> list[AppointmentResponse]:
        """
        List the appointments visible to the caller.

        Database failures degrade to an empty list so list and calendar
        views still render.
        """
        try:
            rows = await self.list_all()
        except SQLAlchemyError as e:
            logger.warning("appointment_list_failed", actor_id=str(actor.id), error=str(e))
            return []

        return project(rows, actor.role, actor.id)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def normalize_instant(self, value: datetime) -> datetime:
        """Read naive instants in the clinic time zone and convert to UTC."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.tz)
        return value.astimezone(UTC)

    async def create_appointment(
        self,
        doctor_id: UUID,
        patient_id: UUID,
        instant: datetime,
    ) -> AppointmentResponse:
        """
        Book a slot.

        The live-slot unique index makes the existence check and the insert
        one statement, so of several racing callers exactly one succeeds.

        Args:
            doctor_id: Doctor to book with
            patient_id: Patient the appointment is for
            instant: Slot instant

        Returns:
            Created appointment in ``scheduled`` status

        Raises:
            NotFoundException: If the doctor does not exist
            ValidationException: If the instant is not a bookable slot
            SlotConflictException: If the slot already holds a live appointment
        """
        appointment_at = self.normalize_instant(instant)

        if not is_on_grid(appointment_at, self.hours, self.tz):
            raise ValidationException("Appointment time must match a clinic slot")

        if doctor_id == patient_id:
            raise ValidationException("Doctors cannot book appointments with themselves")

        result = await self.db.execute(select(doctors.c.id).where(doctors.c.id == doctor_id))
        if result.first() is None:
            raise NotFoundException("Doctor not found")

        now = utc_now()
        appointment_id = uuid4()
        values = {
            "id": appointment_id,
            "doctor_id": doctor_id,
            "patient_id": patient_id,
            "appointment_at": appointment_at,
            "status": AppointmentStatus.SCHEDULED.value,
            "created_at": now,
            "updated_at": now,
        }

        try:
            await self.db.execute(insert(appointments).values(**values))
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_slot_conflict(e):
                logger.info(
                    "slot_conflict",
                    doctor_id=str(doctor_id),
                    appointment_at=appointment_at.isoformat(),
                )
                raise SlotConflictException("This slot has just been booked") from e
            raise

        logger.info(
            "appointment_created",
            appointment_id=str(appointment_id),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            appointment_at=appointment_at.isoformat(),
        )

        return await self._fetch(appointment_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _transition_from_scheduled(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
    ) -> None:
        """
        Move a scheduled appointment to a new status as one conditional update.

        Raises:
            InvalidStateException: If another caller changed the status first
        """
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.status == AppointmentStatus.SCHEDULED.value,
                )
            )
            .values(**values)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidStateException("Appointment is no longer scheduled")

    async def complete_appointment(
        self,
        appointment_id: UUID,
        actor: Actor,
        diagnosis: str,
        notes: str,
        medications: list[MedicationEntry],
    ) -> AppointmentResponse:
        """
        Close a visit and attach its consultation payload.

        Args:
            appointment_id: Appointment ID
            actor: Requesting user, must be the assigned doctor
            diagnosis: Diagnosis text
            notes: Consultation notes
            medications: Ordered medication entries, may be empty

        Returns:
            Completed appointment with consultation

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not the assigned doctor
            InvalidStateException: If the appointment is not scheduled
            ValidationException: If diagnosis or notes is blank
        """
        current = await self._fetch(appointment_id)

        if current.doctor_id != actor.id:
            raise ForbiddenException("Only the assigned doctor can complete this appointment")

        if current.status != AppointmentStatus.SCHEDULED:
            raise InvalidStateException(
                f"Cannot complete an appointment that is {current.status.value}"
            )

        if not diagnosis.strip():
            raise ValidationException("Diagnosis is required")
        if not notes.strip():
            raise ValidationException("Notes are required")

        now = utc_now()
        await self._transition_from_scheduled(
            appointment_id,
            {
                "status": AppointmentStatus.COMPLETED.value,
                "completed_at": now,
                "updated_at": now,
            },
        )

        consultation_id = uuid4()
        await self.db.execute(
            insert(consultations).values(
                id=consultation_id,
                appointment_id=appointment_id,
                diagnosis=diagnosis.strip(),
                notes=notes.strip(),
                created_at=now,
            )
        )

        if medications:
            await self.db.execute(
                insert(prescriptions),
                [
                    {
                        "id": uuid4(),
                        "consultation_id": consultation_id,
                        "position": position,
                        "medication": med.medication,
                        "dosage": med.dosage,
                        "status": "issued",
                        "created_at": now,
                        "updated_at": now,
                    }
                    for position, med in enumerate(medications)
                ],
            )

        await self.db.commit()

        logger.info(
            "appointment_completed",
            appointment_id=str(appointment_id),
            doctor_id=str(actor.id),
            medications=len(medications),
        )

        return await self.get_appointment(appointment_id, actor)

    async def cancel_appointment(self, appointment_id: UUID, actor: Actor) -> AppointmentResponse:
        """
        Cancel a scheduled appointment, freeing its slot.

        Args:
            appointment_id: Appointment ID
            actor: Requesting user; the patient, the assigned doctor or an admin

        Returns:
            Cancelled appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller may not cancel it
            InvalidStateException: If the appointment is not scheduled
        """
        current = await self._fetch(appointment_id)

        if not actor.is_admin and actor.id not in (current.patient_id, current.doctor_id):
            raise ForbiddenException("Access denied to this appointment")

        if current.status != AppointmentStatus.SCHEDULED:
            raise InvalidStateException(
                f"Cannot cancel an appointment that is {current.status.value}"
            )

        now = utc_now()
        await self._transition_from_scheduled(
            appointment_id,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "cancelled_at": now,
                "updated_at": now,
            },
        )
        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            actor_id=str(actor.id),
            actor_role=actor.role.value,
        )

        return await self.get_appointment(appointment_id, actor)

    async def delete_appointment(self, appointment_id: UUID, actor: Actor) -> None:
        """
        Permanently remove an appointment with its consultation and prescriptions.

        Args:
            appointment_id: Appointment ID
            actor: Requesting user, must be an admin

        Raises:
            ForbiddenException: If the caller is not an admin
            NotFoundException: If appointment not found
        """
        if not actor.is_admin:
            raise ForbiddenException("Only administrators can delete appointments")

        consultation_ids = select(consultations.c.id).where(
            consultations.c.appointment_id == appointment_id
        )
        await self.db.execute(
            delete(prescriptions).where(prescriptions.c.consultation_id.in_(consultation_ids))
        )
        await self.db.execute(
            delete(consultations).where(consultations.c.appointment_id == appointment_id)
        )
        result = await self.db.execute(
            delete(appointments).where(appointments.c.id == appointment_id)
        )

        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundException("Appointment not found")

        await self.db.commit()

        logger.info(
            "appointment_deleted",
            appointment_id=str(appointment_id),
            actor_id=str(actor.id),
        )
