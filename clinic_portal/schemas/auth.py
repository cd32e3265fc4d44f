"""Authentication schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    """Portal role enumeration."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class Actor(BaseModel):
    """Identity and role of the caller, passed into every service call."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        """Check if the caller is an administrator."""
        return self.role == UserRole.ADMIN
