"""Event proposal service wiring expansion, schedules, submission and attendance."""

import logging
from datetime import datetime
from typing import Optional

from .config import SchedulingSettings, get_settings
from .core.clock import Clock, SystemClock
from .domain.attendance_policy import AttendancePolicy
from .domain.attendance_session import AttendanceTokenSession
from .domain.daily_schedule import DailyScheduleBuilder, validate_schedule
from .domain.recurrence import OccurrenceExpander
from .domain.series_submitter import SeriesSubmitter
from .exceptions import TokenIssueError, ValidationError
from .models import EventTemplate, Occurrence, RecurrenceRule, SeriesSubmissionResult
from .portal.protocols import AttendanceCounter, AttendanceTokenIssuer, EventStore

logger = logging.getLogger(__name__)


class EventProposalService:
    """Proposes (possibly recurring) events and opens attendance sessions."""

    def __init__(
        self,
        store: EventStore,
        issuer: Optional[AttendanceTokenIssuer] = None,
        counter: Optional[AttendanceCounter] = None,
        settings: Optional[SchedulingSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.issuer = issuer
        self.counter = counter
        self.clock = clock

        self.expander = OccurrenceExpander.from_settings(self.settings)
        self.schedule_builder = DailyScheduleBuilder(self.settings.schedule_defaults)
        self.submitter = SeriesSubmitter(max_concurrency=self.settings.submit_concurrency)
        self.policy = AttendancePolicy.from_settings(self.settings)

    @staticmethod
    def validate_template(template: EventTemplate) -> None:
        """Reject templates the portal would refuse for every occurrence.

        Raises:
            ValidationError: Blank title, or donations open without a positive target
        """
        if not template.title.strip():
            raise ValidationError("Event title is required")
        if template.is_open_for_donation and not (template.donation_target or 0) > 0:
            raise ValidationError("Donation target must be greater than zero")

    def preview(
        self,
        template: EventTemplate,
        base_start: datetime,
        base_end: datetime,
        rule: Optional[RecurrenceRule] = None,
    ) -> list[Occurrence]:
        """Expand without submitting anything."""
        return self.expander.expand(template, base_start, base_end, rule or RecurrenceRule())

    async def propose(
        self,
        template: EventTemplate,
        base_start: datetime,
        base_end: datetime,
        rule: Optional[RecurrenceRule] = None,
    ) -> SeriesSubmissionResult:
        """Expand the rule and create one event per occurrence.

        Schedule problems for a single occurrence are recorded as that
        occurrence's failure; the other occurrences are still submitted.

        Raises:
            ValidationError: Invalid template, time range or rule
        """
        self.validate_template(template)
        occurrences = self.preview(template, base_start, base_end, rule)

        async def persist(occurrence: Occurrence) -> str:
            schedule = self.schedule_builder.build_for_template(template, occurrence)
            if schedule:
                validate_schedule(occurrence.start, occurrence.end, schedule)
            return await self.store.create_event(
                occurrence,
                template,
                schedule,
                occurrence.series_id,
                occurrence.occurrence_index,
            )

        result = await self.submitter.submit(occurrences, persist)
        logger.info("Proposal %r: %s", template.title, result.summary())
        return result

    async def open_attendance(
        self,
        event_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> AttendanceTokenSession:
        """Start a token session for a live event. The caller must stop it.

        When the event's ``start`` and ``end`` are given, the session is only
        opened inside the token issuance window.

        Raises:
            ValidationError: If the service has no token issuer or counter
            TokenIssueError: If ``now`` is outside the issuance window
        """
        if self.issuer is None or self.counter is None:
            raise ValidationError("Attendance requires a token issuer and an attendance counter")

        if start is not None and end is not None:
            now = (self.clock or SystemClock()).now()
            refusal = self.policy.issuance_refusal(start, end, now)
            if refusal:
                logger.warning("Not opening attendance for %s: %s", event_id, refusal)
                raise TokenIssueError(refusal, 400)

        session = AttendanceTokenSession.from_settings(
            self.settings, self.issuer, self.counter, clock=self.clock
        )
        await session.start(event_id)
        return session
