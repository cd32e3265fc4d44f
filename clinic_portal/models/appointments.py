"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from clinic_portal.models.base import metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    # Booked slot, always UTC
    Column("appointment_at", DateTime(timezone=True), nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    Column("completed_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
)

Index("ix_appointments_patient_id", appointments.c.patient_id)
Index("ix_appointments_doctor_id", appointments.c.doctor_id)
Index("ix_appointments_appointment_at", appointments.c.appointment_at)

# One live booking per doctor and instant; cancelled rows release the slot
Index(
    "uq_appointments_doctor_slot_active",
    appointments.c.doctor_id,
    appointments.c.appointment_at,
    unique=True,
    postgresql_where=text("status <> 'cancelled'"),
    sqlite_where=text("status <> 'cancelled'"),
)
