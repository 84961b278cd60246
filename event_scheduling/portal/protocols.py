"""Protocol definitions for the portal collaborators.

These protocols let the domain code depend on behaviour rather than on the
HTTP client, so tests can pass simple fakes.
"""

from collections.abc import Sequence
from typing import Optional, Protocol

from ..models import DailyScheduleEntry, EventTemplate, Occurrence, TokenGrant


class EventStore(Protocol):
    """Creates one event per occurrence."""

    async def create_event(
        self,
        occurrence: Occurrence,
        template: EventTemplate,
        schedule: Sequence[DailyScheduleEntry],
        series_id: Optional[str],
        occurrence_index: int,
    ) -> str:
        """Persist the occurrence and return the new event id.

        Raises:
            PersistError: If the event could not be created
        """
        ...


class AttendanceTokenIssuer(Protocol):
    """Issues short-lived attendance tokens for an event."""

    async def issue_attendance_token(self, event_id: str) -> TokenGrant:
        """Raises TokenIssueError on failure."""
        ...


class AttendanceCounter(Protocol):
    """Reports how many attendees have checked in."""

    async def get_attendance_count(self, event_id: str) -> int:
        """Raises PollError on failure."""
        ...
