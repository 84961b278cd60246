"""Command-line entry for event_scheduling.

Previews how a proposed event expands into occurrences and volunteer
schedules without contacting the portal.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import datetime

from dateutil import parser as date_parser

from .config import get_settings
from .domain.daily_schedule import DailyScheduleBuilder
from .domain.recurrence import OccurrenceExpander
from .exceptions import ValidationError
from .logging_config import configure_from_settings
from .models import (
    DailyScheduleEntry,
    EventTemplate,
    RecurrencePattern,
    RecurrenceRule,
    VolunteerSettings,
)

EXIT_VALIDATION_ERROR = 2


def _parse_datetime(value: str) -> datetime:
    try:
        return date_parser.isoparse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO 8601 date/time: {value!r}") from exc


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the event_scheduling CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="event_scheduling",
        description="Event occurrence and attendance scheduling tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m event_scheduling preview --start 2024-03-01T09:00 --end 2024-03-01T11:00
  python -m event_scheduling preview --start 2024-03-01T09:00 --end 2024-03-01T11:00 \\
      --pattern weekly --count 4 --weekday 2
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview = subparsers.add_parser("preview", help="Print the occurrences a rule expands to")
    preview.add_argument("--title", default="Preview", help="Event title (default: Preview)")
    preview.add_argument("--start", type=_parse_datetime, required=True, help="Base start (ISO 8601)")
    preview.add_argument("--end", type=_parse_datetime, required=True, help="Base end (ISO 8601)")
    preview.add_argument(
        "--pattern",
        choices=[pattern.value for pattern in RecurrencePattern],
        default=RecurrencePattern.NONE.value,
        help="Recurrence pattern (default: none)",
    )
    preview.add_argument("--interval", type=int, default=1, help="Every N weeks/months")
    preview.add_argument("--count", type=int, default=1, help="Number of occurrences")
    preview.add_argument("--weekday", type=int, help="Target weekday, 0 = Sunday")
    preview.add_argument("--day-of-month", type=int, help="Target day of month (1-31)")
    preview.add_argument(
        "--volunteer", action="store_true", help="Also build the default volunteer schedules"
    )
    preview.add_argument("--json", action="store_true", help="Print JSON instead of text")

    return parser


def _preview(args: argparse.Namespace) -> int:
    settings = get_settings()
    defaults = settings.schedule_defaults
    # Volunteer previews start from the default window on the base date
    volunteer_settings = VolunteerSettings(
        daily_schedule=[
            DailyScheduleEntry(
                date=args.start.date(), time_in=defaults.time_in, time_out=defaults.time_out
            )
        ]
    )
    template = EventTemplate(
        title=args.title,
        is_open_for_volunteer=args.volunteer,
        volunteer_settings=volunteer_settings,
    )
    rule = RecurrenceRule(
        pattern=RecurrencePattern(args.pattern),
        interval=args.interval,
        count=args.count,
        weekday=args.weekday,
        day_of_month=args.day_of_month,
    )

    occurrences = OccurrenceExpander.from_settings(settings).expand(
        template, args.start, args.end, rule
    )
    builder = DailyScheduleBuilder(defaults)
    schedules = [builder.build_for_template(template, occurrence) for occurrence in occurrences]

    if args.json:
        payload = [
            {
                **occurrence.model_dump(mode="json"),
                "schedule": [entry.model_dump(mode="json", by_alias=True) for entry in schedule],
            }
            for occurrence, schedule in zip(occurrences, schedules)
        ]
        print(json.dumps(payload, indent=2))
        return 0

    for occurrence, schedule in zip(occurrences, schedules):
        print(
            f"#{occurrence.occurrence_index}  {occurrence.start.isoformat()} -> "
            f"{occurrence.end.isoformat()}"
        )
        for entry in schedule:
            print(f"    {entry.date.isoformat()}  {entry.time_in:%H:%M}-{entry.time_out:%H:%M}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the event_scheduling CLI and return the process exit code."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    configure_from_settings(get_settings())

    try:
        return _preview(args)
    except ValidationError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    sys.exit(main())
