"""Unit tests for event_scheduling.domain.recurrence."""

from datetime import datetime, timedelta, timezone

import pytest

from event_scheduling.config import SchedulingSettings
from event_scheduling.domain.recurrence import OccurrenceExpander, expand, portal_weekday
from event_scheduling.exceptions import ValidationError
from event_scheduling.models import RecurrencePattern, RecurrenceRule

pytestmark = [pytest.mark.unit, pytest.mark.fast]

UTC = timezone.utc


def _weekly(**kwargs) -> RecurrenceRule:
    return RecurrenceRule(pattern=RecurrencePattern.WEEKLY, **kwargs)


def _monthly(**kwargs) -> RecurrenceRule:
    return RecurrenceRule(pattern=RecurrencePattern.MONTHLY, **kwargs)


class TestPortalWeekday:
    """Weekday numbering used by recurrence rules."""

    def test_portal_weekday_when_sunday_then_zero(self):
        """Test that Sunday maps to 0."""
        assert portal_weekday(datetime(2024, 3, 3)) == 0

    def test_portal_weekday_when_saturday_then_six(self):
        """Test that Saturday maps to 6."""
        assert portal_weekday(datetime(2024, 3, 2)) == 6

    def test_portal_weekday_when_friday_then_five(self):
        """Test that Friday maps to 5."""
        assert portal_weekday(datetime(2024, 3, 1)) == 5


class TestNonRecurring:
    def test_expand_when_pattern_none_then_single_base_occurrence(
        self, template, base_start, base_end
    ):
        """Test that a non-recurring rule yields only the base occurrence."""
        occurrences = expand(template, base_start, base_end, RecurrenceRule(count=5))

        assert len(occurrences) == 1
        assert occurrences[0].occurrence_index == 0
        assert occurrences[0].start == base_start
        assert occurrences[0].end == base_end
        assert occurrences[0].series_id is None

    def test_expand_when_end_equals_start_then_validation_error(self, template, base_start):
        """Test that a zero-length base occurrence is rejected."""
        with pytest.raises(ValidationError, match="End date/time must be after start"):
            expand(template, base_start, base_start, RecurrenceRule())

    def test_expand_when_end_before_start_then_validation_error_for_recurring_rule(
        self, template, base_start
    ):
        """Test that an inverted range is rejected before any expansion."""
        with pytest.raises(ValidationError):
            expand(template, base_start, base_start - timedelta(hours=1), _weekly(count=3))


class TestWeeklyExpansion:
    def test_expand_when_weekly_four_then_consecutive_fridays(self, template):
        """Test the documented weekly example: four Fridays, two hours each."""
        occurrences = expand(
            template,
            datetime(2024, 3, 1, 9, 0),
            datetime(2024, 3, 1, 11, 0),
            _weekly(interval=1, count=4),
        )

        assert [o.start for o in occurrences] == [
            datetime(2024, 3, 1, 9, 0),
            datetime(2024, 3, 8, 9, 0),
            datetime(2024, 3, 15, 9, 0),
            datetime(2024, 3, 22, 9, 0),
        ]
        assert all(o.duration == timedelta(hours=2) for o in occurrences)
        assert [o.occurrence_index for o in occurrences] == [0, 1, 2, 3]

    def test_expand_when_weekly_interval_two_then_steps_are_cumulative(
        self, template, base_start, base_end
    ):
        """Test that interval 2 yields occurrences 0, 14 and 28 days after the base."""
        occurrences = expand(template, base_start, base_end, _weekly(interval=2, count=3))

        offsets = [(o.start - base_start).days for o in occurrences]
        assert offsets == [0, 14, 28]

    def test_expand_when_weekday_set_then_generated_occurrences_shift_forward(
        self, template, base_start, base_end
    ):
        """Test that generated occurrences move to the target weekday; the base does not."""
        # 2024-03-01 is a Friday; 2 is Tuesday
        occurrences = expand(template, base_start, base_end, _weekly(count=4, weekday=2))

        assert occurrences[0].start == base_start
        assert [o.start.date().isoformat() for o in occurrences[1:]] == [
            "2024-03-12",
            "2024-03-19",
            "2024-03-26",
        ]
        assert all(portal_weekday(o.start) == 2 for o in occurrences[1:])
        assert all(o.end - o.start == timedelta(hours=2) for o in occurrences)

    def test_expand_when_weekday_matches_base_then_no_shift(self, template, base_start, base_end):
        """Test that a weekday equal to the base weekday leaves the weekly cadence alone."""
        occurrences = expand(template, base_start, base_end, _weekly(count=3, weekday=5))

        assert [(o.start - base_start).days for o in occurrences] == [0, 7, 14]

    def test_expand_when_count_over_cap_then_clamped_to_24(self, template, base_start, base_end):
        """Test that at most 24 occurrences are generated."""
        occurrences = expand(template, base_start, base_end, _weekly(count=100))

        assert len(occurrences) == 24
        assert occurrences[-1].occurrence_index == 23

    def test_expand_when_custom_cap_then_clamped_to_cap(self, template, base_start, base_end):
        """Test that the expander honours a configured cap."""
        expander = OccurrenceExpander(max_occurrences=5)

        assert len(expander.expand(template, base_start, base_end, _weekly(count=10))) == 5

    def test_expander_from_settings_when_created_then_uses_max_occurrences(
        self, template, base_start, base_end
    ):
        """Test that the cap is read from settings."""
        expander = OccurrenceExpander.from_settings(SchedulingSettings(max_occurrences=3))

        assert len(expander.expand(template, base_start, base_end, _weekly(count=10))) == 3

    @pytest.mark.parametrize("count", [0, -3])
    def test_expand_when_count_not_positive_then_single_occurrence(
        self, template, base_start, base_end, count
    ):
        """Test that a non-positive count is clamped up to one occurrence."""
        occurrences = expand(template, base_start, base_end, _weekly(count=count))

        assert len(occurrences) == 1
        assert occurrences[0].start == base_start
        assert occurrences[0].series_id is None

    @pytest.mark.parametrize("interval", [0, -1])
    def test_expand_when_interval_not_positive_then_treated_as_one(
        self, template, base_start, base_end, interval
    ):
        """Test that a non-positive interval is clamped to every week."""
        occurrences = expand(template, base_start, base_end, _weekly(interval=interval, count=3))

        assert [o.start for o in occurrences] == [
            base_start,
            base_start + timedelta(weeks=1),
            base_start + timedelta(weeks=2),
        ]

    def test_expand_when_monthly_interval_zero_then_treated_as_one(
        self, template, base_start, base_end
    ):
        occurrences = expand(template, base_start, base_end, _monthly(interval=0, count=2))

        assert [o.start.month for o in occurrences] == [3, 4]


class TestMonthlyExpansion:
    def test_expand_when_monthly_then_month_advances_by_index(
        self, template, base_start, base_end
    ):
        """Test that occurrence i falls in month base.month + i, not an accumulated offset."""
        occurrences = expand(template, base_start, base_end, _monthly(count=3))

        assert [o.start.month for o in occurrences] == [3, 4, 5]
        assert all(o.start.day == 1 for o in occurrences)

    def test_expand_when_monthly_interval_three_then_quarterly(
        self, template, base_start, base_end
    ):
        """Test that interval 3 yields quarterly occurrences across a year boundary."""
        occurrences = expand(template, base_start, base_end, _monthly(interval=3, count=4))

        assert [(o.start.year, o.start.month) for o in occurrences] == [
            (2024, 3),
            (2024, 6),
            (2024, 9),
            (2024, 12),
        ]

    def test_expand_when_day_of_month_set_then_base_keeps_its_day(
        self, template, base_start, base_end
    ):
        """Test that the day override applies to generated occurrences only."""
        occurrences = expand(template, base_start, base_end, _monthly(count=3, day_of_month=15))

        assert occurrences[0].start == base_start
        assert [o.start.date().isoformat() for o in occurrences[1:]] == ["2024-04-15", "2024-05-15"]

    def test_expand_when_day_31_then_short_months_clamp_to_last_day(self, template):
        """Test that day 31 clamps to the last day of shorter months."""
        start = datetime(2024, 1, 31, 18, 0, tzinfo=UTC)
        occurrences = expand(
            template, start, start + timedelta(hours=3), _monthly(count=4, day_of_month=31)
        )

        assert [o.start.date().isoformat() for o in occurrences] == [
            "2024-01-31",
            "2024-02-29",
            "2024-03-31",
            "2024-04-30",
        ]

    def test_expand_when_base_on_31st_then_later_months_recover_day(self, template):
        """Test that clamping in February does not carry into March."""
        start = datetime(2023, 1, 31, 10, 0)
        occurrences = expand(template, start, start + timedelta(hours=1), _monthly(count=3))

        assert [o.start.date().isoformat() for o in occurrences] == [
            "2023-01-31",
            "2023-02-28",
            "2023-03-31",
        ]

    def test_expand_when_monthly_then_time_of_day_preserved(self, template, base_start, base_end):
        """Test that monthly occurrences keep the base time of day and timezone."""
        occurrences = expand(template, base_start, base_end, _monthly(count=4))

        assert all(o.start.time() == base_start.time() for o in occurrences)
        assert all(o.start.tzinfo == UTC for o in occurrences)


class TestDurationPreservation:
    @pytest.mark.parametrize(
        "rule",
        [
            RecurrenceRule(),
            RecurrenceRule(pattern=RecurrencePattern.WEEKLY, count=6),
            RecurrenceRule(pattern=RecurrencePattern.WEEKLY, interval=3, count=5, weekday=0),
            RecurrenceRule(pattern=RecurrencePattern.MONTHLY, count=12),
            RecurrenceRule(pattern=RecurrencePattern.MONTHLY, count=12, day_of_month=30),
        ],
    )
    @pytest.mark.parametrize(
        "duration",
        [timedelta(minutes=30), timedelta(hours=2), timedelta(days=2, hours=6)],
    )
    def test_expand_when_any_rule_then_every_occurrence_keeps_base_duration(
        self, template, rule, duration
    ):
        """Test that every occurrence lasts exactly as long as the base."""
        start = datetime(2024, 1, 31, 22, 0, tzinfo=UTC)

        occurrences = expand(template, start, start + duration, rule)

        assert 1 <= len(occurrences) <= 24
        assert all(o.end - o.start == duration for o in occurrences)
