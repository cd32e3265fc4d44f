"""Prescription and patient history endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from clinic_portal.dependencies import CurrentActor, DatabaseSession
from clinic_portal.schemas.prescriptions import (
    PatientHistoryResponse,
    PatientResponse,
    PrescriptionResponse,
    PrescriptionStatusUpdate,
)
from clinic_portal.services.prescription_service import PrescriptionService

router = APIRouter()


@router.get(
    "/prescriptions",
    response_model=list[PrescriptionResponse],
    status_code=status.HTTP_200_OK,
    summary="List prescriptions",
)
async def list_prescriptions(
    actor: CurrentActor,
    db: DatabaseSession,
) -> list[PrescriptionResponse]:
    """Prescriptions visible to the caller's role."""
    service = PrescriptionService(db)
    return await service.list_prescriptions(actor)


@router.put(
    "/prescriptions/{prescription_id}",
    response_model=PrescriptionResponse,
    status_code=status.HTTP_200_OK,
    summary="Update prescription status",
)
async def update_prescription(
    prescription_id: UUID,
    data: PrescriptionStatusUpdate,
    actor: CurrentActor,
    db: DatabaseSession,
) -> PrescriptionResponse:
    """Mark a prescription dispensed (issuing doctor or admin)."""
    service = PrescriptionService(db)
    return await service.update_status(prescription_id, actor, data.status)


@router.get(
    "/patients",
    response_model=list[PatientResponse],
    status_code=status.HTTP_200_OK,
    summary="List patients",
)
async def list_patients(
    actor: CurrentActor,
    db: DatabaseSession,
) -> list[PatientResponse]:
    """Patients visible to the caller's role."""
    service = PrescriptionService(db)
    return await service.list_patients(actor)


@router.get(
    "/patients/{patient_id}/history",
    response_model=PatientHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Patient history",
)
async def get_patient_history(
    patient_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> PatientHistoryResponse:
    """Appointments and prescriptions of a patient, as far as the caller may see."""
    service = PrescriptionService(db)
    return await service.patient_history(patient_id, actor)
