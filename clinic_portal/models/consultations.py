"""Consultation and prescription models using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Text,
    Uuid,
    func,
)

from clinic_portal.models.base import metadata

# Consultation payload of a completed appointment
consultations = Table(
    "consultations",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("diagnosis", Text, nullable=False),
    Column("notes", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

# Medications issued during a consultation
prescriptions = Table(
    "prescriptions",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column(
        "consultation_id",
        Uuid,
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Order the medications were entered in
    Column("position", Integer, nullable=False),
    Column("medication", Text, nullable=False),
    Column("dosage", Text, nullable=False),
    Column("status", Text, nullable=False, server_default="issued"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('issued', 'dispensed')",
        name="prescriptions_status_check",
    ),
)
