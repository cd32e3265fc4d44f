"""Slot catalog: the bookable time-of-day labels of a clinic day."""

from datetime import UTC, date, datetime, time, timedelta, tzinfo

from clinic_portal.core.clinic_clock import ClinicHours, ensure_utc


def generate_slots(hours: ClinicHours) -> list[str]:
    """
    Build the ordered slot labels for one working day.

    Args:
        hours: Clinic operating window and granularity

    Returns:
        Zero-padded ``HH:MM`` labels, e.g. ``["09:00", "09:30", ...]``
    """
    labels = []
    start = hours.open_hour * 60
    for index in range(hours.slots_per_day):
        minutes = start + index * hours.slot_minutes
        labels.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
    return labels


def parse_label(label: str) -> time:
    """Turn an ``HH:MM`` label into a time of day."""
    hour, minute = label.split(":")
    return time(int(hour), int(minute))


def slot_instant(day: date, label: str, tz: tzinfo) -> datetime:
    """Combine a calendar date and slot label in ``tz`` into a UTC instant."""
    local = datetime.combine(day, parse_label(label), tzinfo=tz)
    return local.astimezone(UTC)


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """UTC half-open range ``[start, end)`` covering ``day`` in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def is_on_grid(instant: datetime, hours: ClinicHours, tz: tzinfo) -> bool:
    """Check that an instant lands exactly on one of the day's slots."""
    local = ensure_utc(instant).astimezone(tz)
    if local.second or local.microsecond:
        return False
    return f"{local.hour:02d}:{local.minute:02d}" in generate_slots(hours)
