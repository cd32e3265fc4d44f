"""Calendar view endpoints."""

from fastapi import APIRouter, Path, Query

from clinic_portal.core.clinic_clock import get_clinic_timezone, utc_now
from clinic_portal.core.exceptions import ValidationException
from clinic_portal.dependencies import CurrentActor, DatabaseSession
from clinic_portal.schemas.calendar import DayDrilldown, MonthGrid
from clinic_portal.services.appointment_service import AppointmentService
from clinic_portal.services.calendar_service import day_drilldown, month_grid

router = APIRouter()


@router.get("/{year}/{month}", response_model=MonthGrid, summary="Month grid")
async def get_month_grid(
    actor: CurrentActor,
    db: DatabaseSession,
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    selected_day: int | None = Query(None, ge=1, le=31),
) -> MonthGrid:
    """Day cells of a month with event, today and selection markers."""
    tz = get_clinic_timezone()
    appointments = await AppointmentService(db).list_for(actor)
    return month_grid(
        appointments,
        year,
        month,
        tz,
        today=utc_now().astimezone(tz).date(),
        selected_day=selected_day,
    )


@router.get("/{year}/{month}/{day}", response_model=DayDrilldown, summary="Day drill-down")
async def get_day(
    actor: CurrentActor,
    db: DatabaseSession,
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    day: int = Path(..., ge=1, le=31),
) -> DayDrilldown:
    """Appointments falling on one calendar day."""
    try:
        appointments = await AppointmentService(db).list_for(actor)
        return day_drilldown(appointments, year, month, day, get_clinic_timezone())
    except ValueError as e:
        raise ValidationException(str(e)) from e
