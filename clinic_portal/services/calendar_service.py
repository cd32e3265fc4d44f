"""Calendar aggregation of appointments into month and day views."""

import calendar
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, tzinfo

from clinic_portal.core.clinic_clock import ensure_utc
from clinic_portal.schemas.appointments import AppointmentResponse
from clinic_portal.schemas.calendar import CalendarDay, DayDrilldown, MonthGrid


def local_date(appointment: AppointmentResponse, tz: tzinfo) -> date:
    """Calendar date of an appointment in the clinic time zone."""
    return ensure_utc(appointment.appointment_at).astimezone(tz).date()


def aggregate_by_day(
    appointments: Iterable[AppointmentResponse],
    year: int,
    month: int,
    tz: tzinfo,
) -> dict[int, list[AppointmentResponse]]:
    """
    Group appointments of one month by day of month.

    Args:
        appointments: Role-projected appointments
        year: Calendar year
        month: Calendar month (1-12)
        tz: Zone the calendar days are cut in

    Returns:
        Mapping of day number to that day's appointments, in input order.
        Days without appointments are absent.
    """
    buckets: dict[int, list[AppointmentResponse]] = defaultdict(list)
    for appt in appointments:
        day = local_date(appt, tz)
        if day.year == year and day.month == month:
            buckets[day.day].append(appt)
    return dict(buckets)


def leading_blanks(year: int, month: int) -> int:
    """Empty cells before day 1 on a grid whose weeks start on Sunday."""
    return date(year, month, 1).isoweekday() % 7


def month_grid(
    appointments: Iterable[AppointmentResponse],
    year: int,
    month: int,
    tz: tzinfo,
    today: date,
    selected_day: int | None = None,
) -> MonthGrid:
    """
    Build the month grid summary.

    Args:
        appointments: Role-projected appointments
        year: Calendar year
        month: Calendar month (1-12)
        tz: Zone the calendar days are cut in
        today: Current date in the clinic time zone
        selected_day: Day currently drilled into, if any

    Returns:
        Grid with one cell per day of the month
    """
    buckets = aggregate_by_day(appointments, year, month, tz)
    days_in_month = calendar.monthrange(year, month)[1]

    days = [
        CalendarDay(
            day=day,
            has_event=day in buckets,
            is_today=date(year, month, day) == today,
            is_selected=day == selected_day,
            count=len(buckets.get(day, [])),
        )
        for day in range(1, days_in_month + 1)
    ]

    return MonthGrid(
        year=year,
        month=month,
        leading_blanks=leading_blanks(year, month),
        days_in_month=days_in_month,
        days=days,
    )


def day_drilldown(
    appointments: Iterable[AppointmentResponse],
    year: int,
    month: int,
    day: int,
    tz: tzinfo,
) -> DayDrilldown:
    """List the appointments that fall on one local calendar date."""
    target = date(year, month, day)
    items = [appt for appt in appointments if local_date(appt, tz) == target]
    return DayDrilldown(year=year, month=month, day=day, items=items)
