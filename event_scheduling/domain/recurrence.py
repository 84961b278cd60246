"""Recurrence expansion for proposed events.

Turns one base occurrence plus a ``RecurrenceRule`` into the ordered list of
concrete occurrences that will be submitted as a series.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from dateutil.relativedelta import relativedelta

from ..exceptions import ValidationError
from ..models import EventTemplate, Occurrence, RecurrencePattern, RecurrenceRule

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 24


def portal_weekday(dt: datetime) -> int:
    """Weekday of ``dt`` in the portal's convention (0 = Sunday ... 6 = Saturday)."""
    return (dt.weekday() + 1) % 7


class OccurrenceExpander:
    """Expands a base occurrence into a bounded, deterministic series.

    Weekly rules step a cursor forward from the previous occurrence; monthly
    rules are recomputed from the base each time so month lengths never
    accumulate drift. Short months clamp to their last day.
    """

    def __init__(self, max_occurrences: int = DEFAULT_MAX_OCCURRENCES):
        self.max_occurrences = max(1, max_occurrences)

    @classmethod
    def from_settings(cls, settings: Any) -> "OccurrenceExpander":
        return cls(max_occurrences=getattr(settings, "max_occurrences", DEFAULT_MAX_OCCURRENCES))

    def expand(
        self,
        template: EventTemplate,
        base_start: datetime,
        base_end: datetime,
        rule: RecurrenceRule,
    ) -> list[Occurrence]:
        """Expand ``rule`` into concrete occurrences.

        Args:
            template: Event being proposed (not modified)
            base_start: Start of the first occurrence
            base_end: End of the first occurrence
            rule: Recurrence rule; ``count`` is clamped to
                ``[1, max_occurrences]`` and ``interval`` to at least 1

        Returns:
            Occurrences ordered by index, each as long as the base occurrence

        Raises:
            ValidationError: If ``base_end`` is not after ``base_start``
        """
        if base_end <= base_start:
            raise ValidationError("End date/time must be after start date/time")

        if rule.pattern == RecurrencePattern.NONE:
            return [Occurrence(occurrence_index=0, start=base_start, end=base_end)]

        count = max(1, min(rule.count, self.max_occurrences))
        interval = max(1, rule.interval)

        if rule.pattern == RecurrencePattern.WEEKLY:
            starts = self._weekly_starts(base_start, count, interval, rule.weekday)
        else:
            starts = self._monthly_starts(base_start, count, interval, rule.day_of_month)

        duration = base_end - base_start
        occurrences = [
            Occurrence(occurrence_index=index, start=start, end=start + duration)
            for index, start in enumerate(starts)
        ]

        logger.debug(
            "Expanded %r: pattern=%s interval=%d count=%d (requested %d) -> %d occurrences",
            template.title,
            rule.pattern.value,
            interval,
            count,
            rule.count,
            len(occurrences),
        )
        return occurrences

    @staticmethod
    def _weekly_starts(
        base_start: datetime, count: int, interval: int, weekday: int | None
    ) -> list[datetime]:
        step = timedelta(days=7 * interval)
        starts = [base_start]
        cursor = base_start
        for _ in range(1, count):
            cursor = cursor + step
            if weekday is not None:
                cursor = cursor + timedelta(days=(weekday - portal_weekday(cursor) + 7) % 7)
            starts.append(cursor)
        return starts

    @staticmethod
    def _monthly_starts(
        base_start: datetime, count: int, interval: int, day_of_month: int | None
    ) -> list[datetime]:
        starts = [base_start]
        for index in range(1, count):
            # relativedelta clamps ``day`` to the length of the target month
            delta = relativedelta(months=interval * index, day=day_of_month)
            starts.append(base_start + delta)
        return starts


_default_expander = OccurrenceExpander()


def expand(
    template: EventTemplate,
    base_start: datetime,
    base_end: datetime,
    rule: RecurrenceRule,
) -> list[Occurrence]:
    """Expand with the default 24-occurrence cap."""
    return _default_expander.expand(template, base_start, base_end, rule)
