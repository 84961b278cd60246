"""Scheduling domain: recurrence, volunteer schedules, submission and attendance."""

from .attendance_policy import AttendancePolicy, check_in_window_open, token_issuance_open, total_hours
from .attendance_session import AttendanceTokenSession, SessionState
from .daily_schedule import DailyScheduleBuilder, day_count, validate_schedule
from .recurrence import OccurrenceExpander, portal_weekday
from .series_submitter import SeriesSubmitter, new_series_id

__all__ = [
    "AttendancePolicy",
    "AttendanceTokenSession",
    "DailyScheduleBuilder",
    "OccurrenceExpander",
    "SeriesSubmitter",
    "SessionState",
    "check_in_window_open",
    "day_count",
    "new_series_id",
    "portal_weekday",
    "token_issuance_open",
    "total_hours",
    "validate_schedule",
]
