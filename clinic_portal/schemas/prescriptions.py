"""Prescription and patient history schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from clinic_portal.schemas.appointments import AppointmentResponse


class PrescriptionStatus(str, Enum):
    """Prescription status enumeration."""

    ISSUED = "issued"
    DISPENSED = "dispensed"


class PrescriptionResponse(BaseModel):
    """Schema for prescription response."""

    id: UUID
    consultation_id: UUID
    appointment_id: UUID
    doctor_id: UUID
    patient_id: UUID
    doctor_name: str | None = None
    position: int
    medication: str
    dosage: str
    status: PrescriptionStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PrescriptionStatusUpdate(BaseModel):
    """Schema for updating prescription status."""

    status: PrescriptionStatus


class PatientHistoryResponse(BaseModel):
    """All appointments and prescriptions of one patient."""

    patient_id: UUID
    appointments: list[AppointmentResponse]
    prescriptions: list[PrescriptionResponse]


class PatientResponse(BaseModel):
    """Schema for patient list response."""

    id: UUID
    full_name: str
    email: str

    model_config = {"from_attributes": True}
