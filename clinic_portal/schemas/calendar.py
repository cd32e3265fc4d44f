"""Calendar view schemas."""

from pydantic import BaseModel

from clinic_portal.schemas.appointments import AppointmentResponse


class CalendarDay(BaseModel):
    """A single day cell of the month grid."""

    day: int
    has_event: bool
    is_today: bool
    is_selected: bool
    count: int = 0


class MonthGrid(BaseModel):
    """Month grid aligned under Sunday-first weekday headers."""

    year: int
    month: int
    leading_blanks: int
    days_in_month: int
    days: list[CalendarDay]


class DayDrilldown(BaseModel):
    """Appointments of one calendar day."""

    year: int
    month: int
    day: int
    items: list[AppointmentResponse]
