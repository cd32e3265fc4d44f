"""Latest-selection-wins holder for availability queries.

Client-side helper for booking front ends and scripts that drive the
availability endpoint: the API itself is stateless and never uses it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from uuid import UUID

import structlog

from clinic_portal.schemas.availability import DayAvailability

logger = structlog.get_logger()

AvailabilityKey = tuple[UUID, date]
AvailabilityFetcher = Callable[[UUID, date], Awaitable[DayAvailability]]


class AvailabilityView:
    """
    Track the availability of the currently selected doctor and date.

    Every new selection or refresh cancels the fetch still in flight. A
    result is only kept when it comes from the most recently started fetch,
    so a slow answer for an old selection, or an answer that predates a
    refresh of the same selection, never replaces a newer view.
    """

    def __init__(self, fetch: AvailabilityFetcher):
        """Initialize with the coroutine that loads one day's availability."""
        self._fetch = fetch
        self._key: AvailabilityKey | None = None
        self._task: asyncio.Task[DayAvailability] | None = None
        self.current: DayAvailability | None = None

    @property
    def key(self) -> AvailabilityKey | None:
        """Currently selected (doctor, date) pair."""
        return self._key

    def select(self, doctor_id: UUID, day: date) -> asyncio.Task[DayAvailability]:
        """
        Change the selection and start loading it.

        Re-selecting the key already loading reuses the in-flight task.
        """
        key = (doctor_id, day)

        if key == self._key and self._task is not None and not self._task.done():
            return self._task

        return self._start(key)

    def _start(self, key: AvailabilityKey) -> asyncio.Task[DayAvailability]:
        """Cancel any fetch in flight and load ``key`` from scratch."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("availability_fetch_superseded", previous=str(self._key), key=str(key))

        self._key = key
        self.current = None
        self._task = asyncio.create_task(self._load(key))
        return self._task

    async def _load(self, key: AvailabilityKey) -> DayAvailability:
        result = await self._fetch(*key)
        # Only the most recently started fetch may publish, even for the same key
        if asyncio.current_task() is self._task:
            self.current = result
        else:
            logger.debug("availability_result_discarded", key=str(key))
        return result

    async def refresh(self) -> DayAvailability | None:
        """Reload the current selection, e.g. after a booking conflict."""
        if self._key is None:
            return None
        self._start(self._key)
        return await self.wait()

    async def wait(self) -> DayAvailability | None:
        """
        Wait until the latest selection has loaded.

        Selections made while waiting are followed, so the returned value
        always belongs to the newest key.
        """
        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if task is self._task:
                break
        return self.current
