"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MedicationEntry(BaseModel):
    """One medication line of a consultation."""

    medication: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=200)


class AppointmentCreate(BaseModel):
    """Schema for booking a slot."""

    doctor_id: UUID
    appointment_at: datetime = Field(
        ...,
        description="Slot instant; naive values are read in the clinic time zone",
    )


class AppointmentComplete(BaseModel):
    """Schema for closing a visit with its consultation payload."""

    diagnosis: str = Field(..., max_length=2000)
    notes: str = Field(..., max_length=5000)
    medications: list[MedicationEntry] = Field(default_factory=list)


class Party(BaseModel):
    """Patient side of an appointment as shown to other parties."""

    id: UUID
    full_name: str | None = None


class DoctorParty(Party):
    """Doctor side of an appointment as shown to other parties."""

    department: str | None = None
    specialization: str | None = None


class ConsultationResponse(BaseModel):
    """Consultation payload attached to a completed appointment."""

    id: UUID
    diagnosis: str
    notes: str
    medications: list[MedicationEntry] = Field(default_factory=list)
    created_at: datetime


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    doctor_id: UUID
    patient_id: UUID
    appointment_at: datetime
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    patient: Party | None = None
    doctor: DoctorParty | None = None
    consultation: ConsultationResponse | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""

    total: int
    items: list[AppointmentResponse]
