"""Clinic operating window and time zone helpers."""

from datetime import UTC, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clinic_portal.config import settings


class ClinicHours(BaseModel):
    """Daily operating window and slot granularity of the clinic."""

    model_config = ConfigDict(frozen=True)

    open_hour: int = Field(default=9, ge=0, le=23)
    close_hour: int = Field(default=18, ge=1, le=24)
    slot_minutes: int = Field(default=30, ge=1, le=60)

    @model_validator(mode="after")
    def validate_window(self) -> "ClinicHours":
        """Reject windows that cannot be cut into whole slots."""
        if self.close_hour <= self.open_hour:
            raise ValueError("close_hour must be after open_hour")
        if 60 % self.slot_minutes != 0:
            raise ValueError("slot_minutes must divide an hour evenly")
        return self

    @property
    def slots_per_day(self) -> int:
        """Number of bookable slots in one working day."""
        return (self.close_hour - self.open_hour) * (60 // self.slot_minutes)


@lru_cache
def get_clinic_hours() -> ClinicHours:
    """Clinic hours from application settings."""
    return ClinicHours(
        open_hour=settings.clinic_open_hour,
        close_hour=settings.clinic_close_hour,
        slot_minutes=settings.slot_minutes,
    )


@lru_cache
def get_clinic_timezone() -> ZoneInfo:
    """Time zone slot labels and calendar days are expressed in."""
    return ZoneInfo(settings.clinic_timezone)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are taken to already be UTC, which is how SQLite hands
    back timestamps stored by this service.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
