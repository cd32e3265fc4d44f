"""User model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, Table, Text, Uuid, func

from clinic_portal.models.base import metadata

# Mirror of the identity service's accounts, used to resolve display names
users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("full_name", Text, nullable=False),
    # patient, doctor or admin
    Column("role", Text, nullable=False, server_default="patient"),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
