"""Data models for event occurrences, volunteer schedules and attendance tokens."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .exceptions import SeriesSubmissionError, ValidationError


class RecurrencePattern(str, Enum):
    """Supported recurrence patterns."""

    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RecurrenceRule(BaseModel):
    """How a proposed event repeats.

    ``weekday`` follows the portal's form convention: 0 is Sunday, 6 is Saturday.
    ``count`` and ``interval`` are clamped by the expander.
    """

    pattern: RecurrencePattern = RecurrencePattern.NONE
    interval: int = Field(default=1, description="Every N weeks/months")
    count: int = Field(default=1, description="Number of occurrences to generate")
    weekday: Optional[int] = Field(default=None, description="Target weekday for weekly rules")
    day_of_month: Optional[int] = Field(default=None, description="Target day for monthly rules")

    model_config = ConfigDict(frozen=True)

    @field_validator("weekday")
    @classmethod
    def _check_weekday(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 0 <= value <= 6:
            raise ValidationError(f"Weekday must be between 0 and 6, got {value}")
        return value

    @field_validator("day_of_month")
    @classmethod
    def _check_day_of_month(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= 31:
            raise ValidationError(f"Day of month must be between 1 and 31, got {value}")
        return value


class DailyScheduleEntry(BaseModel):
    """Volunteer check-in/check-out window for one calendar day."""

    date: date
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    notes: str = ""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("date", mode="before")
    @classmethod
    def _date_from_datetime(cls, value: Any) -> Any:
        # The portal stores schedule dates as full ISO timestamps
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def _blank_time_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_serializer("time_in", "time_out", when_used="unless-none")
    def serialize_time(self, value: time) -> str:
        """Serialize times as 24-hour HH:MM."""
        return value.strftime("%H:%M")

    @property
    def is_complete(self) -> bool:
        """Check that both time in and time out are set."""
        return self.time_in is not None and self.time_out is not None


class ScheduleDefaults(BaseModel):
    """Fallback window used when no usable schedule entry exists."""

    time_in: time = time(9, 0)
    time_out: time = time(17, 0)
    notes: str = ""

    model_config = ConfigDict(frozen=True)


class VolunteerSettings(BaseModel):
    """Volunteer options attached to an event proposal."""

    mode: str = Field(default="open_for_all", description="Volunteer recruitment mode")
    min_age: Optional[int] = None
    max_volunteers: Optional[int] = None
    required_skills: list[str] = Field(default_factory=list)
    department_restriction_type: str = "all"
    allowed_departments: list[str] = Field(default_factory=list)
    notes: str = ""
    daily_schedule: list[DailyScheduleEntry] = Field(default_factory=list)
    require_time_tracking: bool = True

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class EventTemplate(BaseModel):
    """Caller-owned description of the proposed event, shared by every occurrence."""

    title: str
    description: str = ""
    location: str = ""
    is_open_for_donation: bool = False
    is_open_for_volunteer: bool = False
    volunteer_settings: VolunteerSettings = Field(default_factory=VolunteerSettings)
    media: list[str] = Field(default_factory=list, description="Opaque media references")
    event_category: str = "community_relations"
    donation_target: Optional[float] = None
    reminder_offsets: list[int] = Field(default_factory=lambda: [86400, 3600])

    model_config = ConfigDict(frozen=True)


class Occurrence(BaseModel):
    """One concrete, time-bounded instance of an event."""

    series_id: Optional[str] = None
    occurrence_index: int = 0
    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_range(self) -> "Occurrence":
        if self.end <= self.start:
            raise ValidationError("End date/time must be after start date/time")
        return self

    @property
    def duration(self) -> timedelta:
        """Length of the occurrence."""
        return self.end - self.start


class TokenGrant(BaseModel):
    """Token returned by the issue collaborator."""

    token: str
    ttl_seconds: int = 30


class AttendanceToken(BaseModel):
    """Short-lived attendance verification credential."""

    token: str
    issued_at: datetime
    ttl_seconds: int

    model_config = ConfigDict(frozen=True)

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime) -> bool:
        """Check whether the token must be treated as invalid at ``now``."""
        return now >= self.expires_at


class OccurrenceFailure(BaseModel):
    """Why one occurrence of a submission was not created."""

    occurrence_index: int
    error: str


class SeriesSubmissionResult(BaseModel):
    """Aggregated outcome of submitting a batch of occurrences."""

    series_id: Optional[str] = None
    total: int = 0
    created_ids: list[str] = Field(default_factory=list)
    failures: list[OccurrenceFailure] = Field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return len(self.created_ids)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def is_success(self) -> bool:
        """A submission succeeds when at least one occurrence was created."""
        return self.succeeded_count > 0

    @property
    def distinct_errors(self) -> list[str]:
        """Failure reasons with duplicates removed, in first-seen order."""
        return list(dict.fromkeys(failure.error for failure in self.failures))

    def summary(self) -> str:
        """Human-readable outcome, e.g. ``3 of 4 occurrences created``."""
        text = f"{self.succeeded_count} of {self.total} occurrences created"
        if self.failures:
            text += ": " + "; ".join(self.distinct_errors)
        return text

    def raise_for_failure(self) -> None:
        """Raise SeriesSubmissionError if no occurrence was created."""
        if not self.is_success:
            raise SeriesSubmissionError(
                f"Failed to create event: {'; '.join(self.distinct_errors) or 'no occurrences'}",
                errors=self.distinct_errors,
            )
