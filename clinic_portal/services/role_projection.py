"""Role-scoped filtering and shaping of appointment lists."""

from collections.abc import Iterable
from uuid import UUID

from clinic_portal.schemas.appointments import AppointmentResponse
from clinic_portal.schemas.auth import UserRole


def project(
    appointments: Iterable[AppointmentResponse],
    role: UserRole,
    actor_id: UUID,
) -> list[AppointmentResponse]:
    """
    Scope an appointment list to what the caller may see.

    Patients see their own bookings with the doctor's details, doctors see
    their own schedule with the patient's details, admins see everything
    with both parties. Inputs are copied, never modified.

    Args:
        appointments: Unfiltered appointments
        role: Caller role
        actor_id: Caller identifier

    Returns:
        Filtered and reshaped appointments, input order preserved
    """
    if role == UserRole.PATIENT:
        return [
            appt.model_copy(update={"patient": None})
            for appt in appointments
            if appt.patient_id == actor_id
        ]

    if role == UserRole.DOCTOR:
        return [
            appt.model_copy(update={"doctor": None})
            for appt in appointments
            if appt.doctor_id == actor_id
        ]

    if role == UserRole.ADMIN:
        return [appt.model_copy() for appt in appointments]

    return []


def can_view(appointment: AppointmentResponse, role: UserRole, actor_id: UUID) -> bool:
    """Check whether a single appointment survives projection for the caller."""
    return bool(project([appointment], role, actor_id))
