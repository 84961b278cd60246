"""Time windows for attendance token issuance and volunteer check-in."""

from datetime import datetime, timedelta
from typing import Any, Optional

TOKEN_ISSUE_LEAD = timedelta(minutes=15)
CHECK_IN_GRACE = timedelta(hours=1)


class AttendancePolicy:
    """When tokens may be issued and scanned for an occurrence.

    Tokens are issued from shortly before the start until the end. Check-ins
    are accepted from the start until a grace period after the end.
    """

    def __init__(
        self,
        issue_lead: timedelta = TOKEN_ISSUE_LEAD,
        check_in_grace: timedelta = CHECK_IN_GRACE,
    ):
        self.issue_lead = issue_lead
        self.check_in_grace = check_in_grace

    @classmethod
    def from_settings(cls, settings: Any) -> "AttendancePolicy":
        return cls(
            issue_lead=timedelta(minutes=settings.token_issue_lead_minutes),
            check_in_grace=timedelta(minutes=settings.check_in_grace_minutes),
        )

    def token_issuance_open(self, start: datetime, end: datetime, now: datetime) -> bool:
        return start - self.issue_lead <= now <= end

    def issuance_refusal(self, start: datetime, end: datetime, now: datetime) -> Optional[str]:
        """Reason the portal gives for refusing a token at ``now``, if any."""
        if now < start - self.issue_lead:
            return "Token issuance not yet available"
        if now > end:
            return "Event already ended"
        return None

    def check_in_window_open(self, start: datetime, end: datetime, now: datetime) -> bool:
        return start <= now <= end + self.check_in_grace

    def check_in_refusal(self, start: datetime, end: datetime, now: datetime) -> Optional[str]:
        if now < start:
            return "Event has not started yet"
        if now > end + self.check_in_grace:
            return "Event window closed"
        return None


def total_hours(time_in: datetime, time_out: datetime) -> float:
    """Hours between check-in and check-out, never negative, rounded to 2 places."""
    seconds = max(0.0, (time_out - time_in).total_seconds())
    return round(seconds / 3600, 2)


_default_policy = AttendancePolicy()


def token_issuance_open(start: datetime, end: datetime, now: datetime) -> bool:
    """Check the default 15-minute issuance lead."""
    return _default_policy.token_issuance_open(start, end, now)


def check_in_window_open(start: datetime, end: datetime, now: datetime) -> bool:
    """Check the default one-hour check-in grace."""
    return _default_policy.check_in_window_open(start, end, now)
