"""event_scheduling - occurrence expansion and attendance scheduling for the events portal.

Expands a proposed event into a bounded series of occurrences, derives the
per-day volunteer schedule for each, submits the series to the portal and
drives the rotating attendance token for a live event.
"""

__version__ = "0.1.0"

from .exceptions import (
    IncompleteScheduleError,
    PersistError,
    PollError,
    SchedulingError,
    SeriesSubmissionError,
    SessionStateError,
    TokenIssueError,
    ValidationError,
)
from .models import (
    AttendanceToken,
    DailyScheduleEntry,
    EventTemplate,
    Occurrence,
    RecurrencePattern,
    RecurrenceRule,
    ScheduleDefaults,
    SeriesSubmissionResult,
    TokenGrant,
    VolunteerSettings,
)

__all__ = [
    "AttendanceToken",
    "DailyScheduleEntry",
    "EventTemplate",
    "IncompleteScheduleError",
    "Occurrence",
    "PersistError",
    "PollError",
    "RecurrencePattern",
    "RecurrenceRule",
    "ScheduleDefaults",
    "SchedulingError",
    "SeriesSubmissionError",
    "SeriesSubmissionResult",
    "SessionStateError",
    "TokenGrant",
    "TokenIssueError",
    "ValidationError",
    "VolunteerSettings",
    "__version__",
]
