"""Doctor directory service (read side of staff management)."""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.config import settings
from clinic_portal.core.redis_client import CacheManager
from clinic_portal.models.departments import departments
from clinic_portal.models.doctors import doctors
from clinic_portal.models.users import users
from clinic_portal.schemas.doctors import DepartmentResponse, DoctorResponse

logger = structlog.get_logger()


class DoctorService:
    """Service for doctor lookups."""

    DOCTOR_LIST_CACHE_KEY = "doctor:list"

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _directory_select():
        return (
            select(
                doctors.c.id,
                users.c.full_name,
                departments.c.name.label("department"),
                doctors.c.specialization,
            )
            .select_from(
                doctors.join(users, users.c.id == doctors.c.id).outerjoin(
                    departments, departments.c.id == doctors.c.department_id
                )
            )
        )

    async def list_doctors(self, db: AsyncSession) -> list[DoctorResponse]:
        """
        List bookable doctors ordered by name, cached when Redis is available.

        A failed query yields an empty directory and is not cached.
        """
        if self.cache:
            cached = self.cache.get_json(self.DOCTOR_LIST_CACHE_KEY)
            if cached is not None:
                return [DoctorResponse.model_validate(d) for d in cached]

        try:
            result = await db.execute(self._directory_select().order_by(users.c.full_name))
        except SQLAlchemyError as e:
            logger.warning("doctor_list_failed", error=str(e))
            return []
        items = [DoctorResponse.model_validate(dict(row)) for row in result.mappings().all()]

        if self.cache:
            self.cache.set_json(
                self.DOCTOR_LIST_CACHE_KEY,
                [item.model_dump(mode="json") for item in items],
                ttl=settings.doctor_list_cache_ttl,
            )

        return items

    async def get_doctor(self, db: AsyncSession, doctor_id: UUID) -> DoctorResponse | None:
        """Get one doctor by ID."""
        result = await db.execute(self._directory_select().where(doctors.c.id == doctor_id))
        row = result.mappings().first()
        return DoctorResponse.model_validate(dict(row)) if row else None

    async def doctor_exists(self, db: AsyncSession, doctor_id: UUID) -> bool:
        """
        Check that a doctor is on staff.

        When the lookup itself fails the doctor is assumed to exist, so
        availability degrades to an all-free day instead of a 404.
        """
        try:
            return await self.get_doctor(db, doctor_id) is not None
        except SQLAlchemyError as e:
            logger.warning("doctor_lookup_failed", doctor_id=str(doctor_id), error=str(e))
            return True

    async def list_departments(self, db: AsyncSession) -> list[DepartmentResponse]:
        """List departments ordered by name."""
        try:
            result = await db.execute(select(departments).order_by(departments.c.name))
        except SQLAlchemyError as e:
            logger.warning("department_list_failed", error=str(e))
            return []
        return [DepartmentResponse.model_validate(dict(row)) for row in result.mappings().all()]
