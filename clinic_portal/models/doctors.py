"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, Uuid, func

from clinic_portal.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    # Same identifier as the doctor's user account
    Column("id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "department_id",
        Uuid,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("specialization", String(200), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
