"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_portal.core.exceptions import ValidationException
from clinic_portal.dependencies import CurrentActor, DatabaseSession
from clinic_portal.schemas.appointments import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
)
from clinic_portal.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment slot",
)
async def create_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book a slot with a doctor for the authenticated user.

    Returns 409 ``SlotConflictException`` when someone else holds the slot;
    the client should reload availability and pick another one.
    """
    service = AppointmentService(db)
    return await service.create_appointment(data.doctor_id, actor.id, data.appointment_at)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """List the appointments visible to the caller's role."""
    service = AppointmentService(db)
    items = await service.list_for(actor)
    return AppointmentListResponse(total=len(items), items=items)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment, with its consultation once completed."""
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id, actor)


@router.put(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    data: AppointmentComplete,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Close a visit with diagnosis, notes and prescribed medications.

    Only the assigned doctor may complete a scheduled appointment.
    """
    service = AppointmentService(db)
    return await service.complete_appointment(
        appointment_id,
        actor,
        diagnosis=data.diagnosis,
        notes=data.notes,
        medications=data.medications,
    )


@router.put(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Cancel a scheduled appointment and release its slot."""
    service = AppointmentService(db)
    return await service.cancel_appointment(appointment_id, actor)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
    confirm: bool = Query(False, description="Must be true; deletion is permanent"),
) -> None:
    """
    Permanently delete an appointment (admin only).

    The record, its consultation and prescriptions are removed from every
    view. Requires ``confirm=true``.
    """
    if not confirm:
        raise ValidationException("Permanent deletion must be confirmed with confirm=true")

    service = AppointmentService(db)
    await service.delete_appointment(appointment_id, actor)
