"""Database models."""

from clinic_portal.models.appointments import appointments
from clinic_portal.models.base import metadata
from clinic_portal.models.consultations import consultations, prescriptions
from clinic_portal.models.departments import departments
from clinic_portal.models.doctors import doctors
from clinic_portal.models.users import users

__all__ = [
    "appointments",
    "consultations",
    "departments",
    "doctors",
    "metadata",
    "prescriptions",
    "users",
]
