"""Doctor directory schemas."""

from uuid import UUID

from pydantic import BaseModel


class DepartmentResponse(BaseModel):
    """Department response schema."""

    id: UUID
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class DoctorResponse(BaseModel):
    """Doctor listing entry used to pick whom to book with."""

    id: UUID
    full_name: str
    department: str | None = None
    specialization: str | None = None

    model_config = {"from_attributes": True}
