"""Per-day volunteer check-in/check-out schedules for occurrences."""

import logging
import math
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from typing import Optional

from ..exceptions import IncompleteScheduleError, ValidationError
from ..models import DailyScheduleEntry, EventTemplate, Occurrence, ScheduleDefaults

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def day_count(start: datetime, end: datetime) -> int:
    """Number of schedule days for an occurrence: whole days, rounded up."""
    return max(1, math.ceil((end - start) / ONE_DAY))


def _find_by_date(entries: Sequence[DailyScheduleEntry], day: date) -> Optional[DailyScheduleEntry]:
    for entry in entries:
        if entry.date == day:
            return entry
    return None


class DailyScheduleBuilder:
    """Builds one schedule entry per day of an occurrence.

    Entries the caller already supplied are reused when complete. Multi-day
    gaps are filled from the first supplied entry, then from ``defaults``.
    ``time_in < time_out`` is not checked here.
    """

    def __init__(self, defaults: Optional[ScheduleDefaults] = None):
        self.defaults = defaults or ScheduleDefaults()

    def build(
        self,
        occurrence_start: datetime,
        occurrence_end: datetime,
        existing_entries: Sequence[DailyScheduleEntry] = (),
        defaults: Optional[ScheduleDefaults] = None,
    ) -> list[DailyScheduleEntry]:
        """Build the schedule for one occurrence.

        Args:
            occurrence_start: Occurrence start
            occurrence_end: Occurrence end
            existing_entries: Entries supplied by the caller, possibly partial
            defaults: Fallback window; the builder's own defaults when omitted

        Returns:
            Exactly ``day_count(start, end)`` entries on consecutive dates

        Raises:
            IncompleteScheduleError: Single-day occurrence without a complete entry
        """
        if occurrence_end <= occurrence_start:
            raise ValidationError("End date/time must be after start date/time")

        defaults = defaults or self.defaults
        days = day_count(occurrence_start, occurrence_end)
        first_day = occurrence_start.date()

        if days == 1:
            return [self._single_day(first_day, existing_entries)]

        template = existing_entries[0] if existing_entries else None
        fallback_in = (template.time_in if template else None) or defaults.time_in
        fallback_out = (template.time_out if template else None) or defaults.time_out

        schedule = []
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            entry = _find_by_date(existing_entries, day)
            if entry is not None and entry.is_complete:
                schedule.append(entry)
                continue
            schedule.append(
                DailyScheduleEntry(
                    date=day,
                    time_in=fallback_in,
                    time_out=fallback_out,
                    notes=entry.notes if entry is not None else defaults.notes,
                )
            )

        logger.debug(
            "Built %d-day schedule from %s (%d supplied entries)",
            days,
            first_day.isoformat(),
            len(existing_entries),
        )
        return schedule

    @staticmethod
    def _single_day(
        day: date, existing_entries: Sequence[DailyScheduleEntry]
    ) -> DailyScheduleEntry:
        entry = _find_by_date(existing_entries, day)
        if entry is None and existing_entries:
            # Series occurrences reuse the template entry written for the base date
            entry = existing_entries[0]

        if entry is None or not entry.is_complete:
            raise IncompleteScheduleError(f"Schedule for {day.isoformat()} is missing time in or time out")

        if entry.date != day:
            entry = entry.model_copy(update={"date": day})
        return entry

    def build_for_template(
        self,
        template: EventTemplate,
        occurrence: Occurrence,
        defaults: Optional[ScheduleDefaults] = None,
    ) -> list[DailyScheduleEntry]:
        """Build the occurrence schedule, or ``[]`` when volunteers are not recruited."""
        if not template.is_open_for_volunteer:
            return []
        return self.build(
            occurrence.start,
            occurrence.end,
            template.volunteer_settings.daily_schedule,
            defaults,
        )


def validate_schedule(
    start: datetime, end: datetime, entries: Sequence[DailyScheduleEntry]
) -> None:
    """Check a multi-day schedule the way the portal backend does before saving.

    Raises:
        ValidationError: Wrong number of entries or a day without both times
    """
    days = day_count(start, end)
    if days <= 1:
        return

    if not entries:
        raise ValidationError(
            "Multi-day events with volunteers require a daily schedule with time in/out for each day"
        )
    if len(entries) != days:
        raise ValidationError(f"Daily schedule must have entries for all {days} day(s) of the event")
    for index, entry in enumerate(entries, start=1):
        if not entry.is_complete:
            raise ValidationError(f"Day {index} is missing time in or time out")


_default_builder = DailyScheduleBuilder()


def build(
    occurrence_start: datetime,
    occurrence_end: datetime,
    existing_entries: Sequence[DailyScheduleEntry] = (),
    defaults: Optional[ScheduleDefaults] = None,
) -> list[DailyScheduleEntry]:
    """Build with the 09:00-17:00 fallback window."""
    return _default_builder.build(occurrence_start, occurrence_end, existing_entries, defaults)
