"""Department model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, Table, Text, Uuid, func

from clinic_portal.models.base import metadata

departments = Table(
    "departments",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
