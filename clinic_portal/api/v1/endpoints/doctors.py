"""Doctor directory and availability endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from clinic_portal.core.clinic_clock import get_clinic_hours, get_clinic_timezone
from clinic_portal.core.exceptions import NotFoundException
from clinic_portal.core.redis_client import CacheManager
from clinic_portal.core.slots import generate_slots
from clinic_portal.dependencies import CurrentActor, DatabaseSession, get_cache_manager
from clinic_portal.schemas.availability import DayAvailability, SlotCatalogResponse
from clinic_portal.schemas.doctors import DepartmentResponse, DoctorResponse
from clinic_portal.services.availability_service import AvailabilityService
from clinic_portal.services.doctor_service import DoctorService

router = APIRouter()


def get_doctor_service(cache_manager: CacheManager = Depends(get_cache_manager)) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(cache_manager=cache_manager)


@router.get("/doctors", response_model=list[DoctorResponse], summary="List doctors")
async def list_doctors(
    actor: CurrentActor,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> list[DoctorResponse]:
    """List doctors available for booking, ordered by name."""
    return await doctor_service.list_doctors(db)


@router.get(
    "/departments",
    response_model=list[DepartmentResponse],
    summary="List departments",
)
async def list_departments(
    actor: CurrentActor,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> list[DepartmentResponse]:
    """List clinic departments."""
    return await doctor_service.list_departments(db)


@router.get("/slots", response_model=SlotCatalogResponse, summary="Slot catalog")
async def slot_catalog() -> SlotCatalogResponse:
    """Bookable time-of-day labels of a clinic day."""
    hours = get_clinic_hours()
    return SlotCatalogResponse(
        open_hour=hours.open_hour,
        close_hour=hours.close_hour,
        slot_minutes=hours.slot_minutes,
        timezone=str(get_clinic_timezone()),
        slots=generate_slots(hours),
    )


@router.get(
    "/doctors/{doctor_id}/availability",
    response_model=DayAvailability,
    summary="Doctor availability for a date",
)
async def get_availability(
    doctor_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
    day: date = Query(..., alias="date", description="Calendar date, YYYY-MM-DD"),
    doctor_service: DoctorService = Depends(get_doctor_service),
) -> DayAvailability:
    """
    Slot catalog of one doctor and date with busy slots marked.

    - **date**: day in the clinic time zone
    """
    if not await doctor_service.doctor_exists(db, doctor_id):
        raise NotFoundException("Doctor not found")

    service = AvailabilityService(db)
    return await service.day_availability(doctor_id, day)
