"""Slot catalog and availability schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class SlotCatalogResponse(BaseModel):
    """Bookable labels of a clinic day."""

    open_hour: int
    close_hour: int
    slot_minutes: int
    timezone: str
    slots: list[str]


class SlotStatus(BaseModel):
    """One slot of a day with its busy marker."""

    label: str
    instant: datetime
    busy: bool


class DayAvailability(BaseModel):
    """
    Slot catalog of one doctor and date, marked busy or available.

    The label properties are conveniences for clients such as
    ``AvailabilityView`` consumers and are not part of the JSON body.
    """

    doctor_id: UUID
    day: date
    timezone: str
    slots: list[SlotStatus]

    @property
    def busy_labels(self) -> list[str]:
        """Labels that are already taken."""
        return [slot.label for slot in self.slots if slot.busy]

    @property
    def available_labels(self) -> list[str]:
        """Labels that can still be booked."""
        return [slot.label for slot in self.slots if not slot.busy]
