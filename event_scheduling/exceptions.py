"""Exception hierarchy for the event scheduling engine.

Validation problems surface synchronously to the caller. Persistence,
token-issue and poll failures are collaborator errors: the submitter and the
attendance session absorb them and only escalate where documented.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for all event scheduling errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(SchedulingError):
    """Malformed input to the expander, the schedule builder or a model.

    Raised when:
    - an occurrence ends at or before its start
    - a weekday or day-of-month is out of range
    - a daily schedule misses required time fields with no usable default

    Never retried automatically.
    """


class IncompleteScheduleError(ValidationError):
    """A single-day occurrence has no complete time in/out entry."""


class PersistError(SchedulingError):
    """Creating one occurrence's event failed."""


class SeriesSubmissionError(SchedulingError):
    """No occurrence of a submission could be created.

    Carries the distinct failure reasons, each listed once.
    """

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class PortalError(SchedulingError):
    """Transport-level failure talking to the portal backend."""


class TokenIssueError(SchedulingError):
    """Issuing an attendance token failed."""


class PollError(SchedulingError):
    """Fetching the live attendance count failed."""


class SessionStateError(SchedulingError):
    """Attendance session lifecycle method called in the wrong state."""
