"""Prescription service: medication lists, patient lookup and history."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.clinic_clock import ensure_utc, utc_now
from clinic_portal.core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from clinic_portal.models.appointments import appointments
from clinic_portal.models.consultations import consultations, prescriptions
from clinic_portal.models.users import users
from clinic_portal.schemas.auth import Actor, UserRole
from clinic_portal.schemas.prescriptions import (
    PatientHistoryResponse,
    PatientResponse,
    PrescriptionResponse,
    PrescriptionStatus,
)
from clinic_portal.services.appointment_service import AppointmentService

logger = structlog.get_logger()


class PrescriptionService:
    """Service for prescriptions issued at completed consultations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _base_select() -> Any:
        return select(
            prescriptions,
            consultations.c.appointment_id,
            appointments.c.doctor_id,
            appointments.c.patient_id,
            users.c.full_name.label("doctor_name"),
        ).select_from(
            prescriptions.join(consultations, consultations.c.id == prescriptions.c.consultation_id)
            .join(appointments, appointments.c.id == consultations.c.appointment_id)
            .outerjoin(users, users.c.id == appointments.c.doctor_id)
        )

    @staticmethod
    def _to_response(row: Any) -> PrescriptionResponse:
        data = dict(row)
        data["created_at"] = ensure_utc(data["created_at"])
        data["updated_at"] = ensure_utc(data["updated_at"])
        return PrescriptionResponse.model_validate(data)

    @staticmethod
    def _scope(actor: Actor) -> list[Any]:
        """Row filters matching what the caller may see."""
        if actor.role == UserRole.PATIENT:
            return [appointments.c.patient_id == actor.id]
        if actor.role == UserRole.DOCTOR:
            return [appointments.c.doctor_id == actor.id]
        return []

    async def list_prescriptions(
        self,
        actor: Actor,
        patient_id: UUID | None = None,
    ) -> list[PrescriptionResponse]:
        """
        List prescriptions visible to the caller, newest first.

        Args:
            actor: Requesting user
            patient_id: Restrict to one patient

        Returns:
            Prescriptions in issue order within each consultation, or an
            empty list when the lookup fails
        """
        conditions = self._scope(actor)
        if patient_id is not None:
            conditions.append(appointments.c.patient_id == patient_id)

        stmt = self._base_select().order_by(
            prescriptions.c.created_at.desc(),
            prescriptions.c.consultation_id,
            prescriptions.c.position,
        )
        if conditions:
            stmt = stmt.where(and_(*conditions))

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.warning("prescription_list_failed", actor_id=str(actor.id), error=str(e))
            return []
        return [self._to_response(row) for row in result.mappings().all()]

    async def update_status(
        self,
        prescription_id: UUID,
        actor: Actor,
        status: PrescriptionStatus,
    ) -> PrescriptionResponse:
        """
        Mark a prescription dispensed.

        Args:
            prescription_id: Prescription ID
            actor: Issuing doctor or an admin
            status: Target status

        Returns:
            Updated prescription

        Raises:
            NotFoundException: If prescription not found
            ForbiddenException: If the caller did not issue it and is not an admin
            InvalidStateException: If a dispensed prescription would go back to issued
        """
        result = await self.db.execute(
            self._base_select().where(prescriptions.c.id == prescription_id)
        )
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Prescription not found")

        if not actor.is_admin and row["doctor_id"] != actor.id:
            raise ForbiddenException("Access denied to this prescription")

        current = PrescriptionStatus(row["status"])
        if current == status:
            return self._to_response(row)

        if current == PrescriptionStatus.DISPENSED:
            raise InvalidStateException("Dispensed prescriptions cannot be reissued")

        update_result = await self.db.execute(
            update(prescriptions)
            .where(
                and_(
                    prescriptions.c.id == prescription_id,
                    prescriptions.c.status == current.value,
                )
            )
            .values(status=status.value, updated_at=utc_now())
        )
        if update_result.rowcount == 0:
            await self.db.rollback()
            raise InvalidStateException("Prescription status changed concurrently")

        await self.db.commit()

        logger.info(
            "prescription_status_updated",
            prescription_id=str(prescription_id),
            status=status.value,
            actor_id=str(actor.id),
        )

        result = await self.db.execute(
            self._base_select().where(prescriptions.c.id == prescription_id)
        )
        return self._to_response(result.mappings().one())

    async def patient_history(self, patient_id: UUID, actor: Actor) -> PatientHistoryResponse:
        """
        Appointments and prescriptions of one patient, scoped to the caller.

        Raises:
            ForbiddenException: If a patient asks for someone else's history
        """
        if actor.role == UserRole.PATIENT and actor.id != patient_id:
            raise ForbiddenException("Access denied to this patient history")

        appointment_service = AppointmentService(self.db)
        visible = await appointment_service.list_for(actor)

        return PatientHistoryResponse(
            patient_id=patient_id,
            appointments=[appt for appt in visible if appt.patient_id == patient_id],
            prescriptions=await self.list_prescriptions(actor, patient_id=patient_id),
        )

    async def list_patients(self, actor: Actor) -> list[PatientResponse]:
        """
        List the patients the caller may look up, ordered by name.

        Admins see every patient, doctors see the patients who booked with
        them and a patient sees only their own record.
        """
        stmt = select(users.c.id, users.c.full_name, users.c.email).where(
            users.c.role == UserRole.PATIENT.value
        )
        if actor.role == UserRole.PATIENT:
            stmt = stmt.where(users.c.id == actor.id)
        elif actor.role == UserRole.DOCTOR:
            booked = select(appointments.c.patient_id).where(appointments.c.doctor_id == actor.id)
            stmt = stmt.where(users.c.id.in_(booked))

        try:
            result = await self.db.execute(stmt.order_by(users.c.full_name))
        except SQLAlchemyError as e:
            logger.warning("patient_list_failed", actor_id=str(actor.id), error=str(e))
            return []
        return [PatientResponse.model_validate(dict(row)) for row in result.mappings().all()]
