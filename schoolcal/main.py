"""
Main CLI entry point for the school days & periods calendar.
"""

import argparse
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import dateparser

from .calendar_service import SchoolCalendar
from .config import ConfigError, configure_logging, load_school_config
from .icalendar_gen import ICalendarGenerator
from .models import (
    deserialize_date, deserialize_period, serialize_classification,
    serialize_dashboard, serialize_date, serialize_event, serialize_remaining,
    serialize_resolved_schedule,
)
from .override_store import encode_custom_override, get_override_store


DATE_FORMAT_LONG = "%A, %B %d, %Y"


def parse_user_date(text: Optional[str], school: SchoolCalendar) -> date:
    """Turn command-line date input into a calendar date.

    YYYY-MM-DD is taken literally. Anything else ("tomorrow",
    "next wednesday") goes through dateparser relative to the school's
    current local time.

    Raises:
        ValueError: If the text cannot be understood as a date
    """
    if not text:
        return school.today()
    try:
        return deserialize_date(text)
    except ValueError:
        pass

    base = school.local_now().replace(tzinfo=None)
    parsed = dateparser.parse(text, settings={
        'RELATIVE_BASE': base,
        'PREFER_DATES_FROM': 'future',
    })
    if parsed is None:
        raise ValueError(f"Could not understand date: {text!r}")
    return parsed.date()


def parse_user_datetime(text: Optional[str], school: SchoolCalendar) -> datetime:
    """Turn command-line input into a moment in the school's time zone."""
    if not text:
        return school.local_now()
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        moment = dateparser.parse(text, settings={
            'RELATIVE_BASE': school.local_now().replace(tzinfo=None),
        })
        if moment is None:
            raise ValueError(f"Could not understand time: {text!r}")
    return school.local_now(moment)


def load_custom_periods(path: Path) -> list:
    """Read a JSON list of periods for a custom override."""
    with open(path, 'r', encoding='utf-8') as f:
        items = json.load(f)
    if not isinstance(items, list):
        raise ValueError("Custom schedule file must contain a JSON list")
    try:
        return [deserialize_period(item, i) for i, item in enumerate(items)]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Custom schedule file has an incomplete period: {e}")


def print_schedule(schedule) -> None:
    print(f"Schedule: {schedule.name} ({schedule.source})")
    for period in schedule.periods:
        marker = "" if period.counts_toward_remaining else "  (not counted)"
        print(f"  {period.label:<12} {period.start.strftime('%H:%M')}-{period.end.strftime('%H:%M')}{marker}")
    for warning in schedule.warnings:
        print(f"  Warning: {warning}")


def cmd_status(school: SchoolCalendar, args) -> None:
    snapshot = school.dashboard(parse_user_datetime(args.now, school))
    if args.json:
        print(json.dumps(serialize_dashboard(snapshot), indent=2))
        return

    print(snapshot.summary)
    print(f"Today: {snapshot.classification.describe()}  ({snapshot.today.strftime(DATE_FORMAT_LONG)})")

    run = snapshot.next_non_attendance
    if run is None:
        print("Next break: None - approaching the end of the year")
    elif run.start_date == run.end_date:
        print(f"Next break: {run.label} on {run.start_date.strftime('%A, %b %d')}")
    else:
        print(f"Next break: {run.label} ({run.start_date.strftime('%b %d')}-{run.end_date.strftime('%b %d')})")

    remaining = snapshot.remaining
    print(f"{remaining.calendar_days_remaining} calendar days left, "
          f"{remaining.percent_complete}% of {remaining.total_school_days} school days complete")

    if snapshot.classification.is_school_day:
        index = snapshot.periods.current_period_index
        if index is not None:
            print(f"Now: {snapshot.schedule.periods[index].label}")
        print_schedule(snapshot.schedule)


def cmd_day(school: SchoolCalendar, args) -> None:
    day = parse_user_date(args.date, school)
    classification = school.classify_day(day)
    if args.json:
        payload = serialize_classification(classification)
        payload["date"] = serialize_date(day)
        print(json.dumps(payload, indent=2))
        return
    print(f"{day.strftime(DATE_FORMAT_LONG)}: {classification.describe()}")


def cmd_schedule(school: SchoolCalendar, args) -> None:
    day = parse_user_date(args.date, school)
    schedule = school.resolve_schedule(day)
    if args.json:
        print(json.dumps(serialize_resolved_schedule(schedule), indent=2))
        return
    print(day.strftime(DATE_FORMAT_LONG))
    print_schedule(schedule)


def cmd_remaining(school: SchoolCalendar, args) -> None:
    day = parse_user_date(args.date, school)
    remaining = school.compute_remaining(day)
    if args.json:
        print(json.dumps(serialize_remaining(remaining), indent=2))
        return
    print(f"From {day.strftime(DATE_FORMAT_LONG)}:")
    print(f"  School days remaining (not counting that day): {remaining.school_days_remaining}")
    print(f"  Calendar days remaining: {remaining.calendar_days_remaining}")
    print(f"  Complete: {remaining.percent_complete}% of {remaining.total_school_days} school days")


def cmd_events(school: SchoolCalendar, args) -> None:
    day = parse_user_date(args.date, school)
    events = school.list_events(day, args.mode)
    if args.json:
        print(json.dumps([serialize_event(e) for e in events], indent=2))
        return
    if not events:
        print(f"No {'' if args.mode == 'all' else args.mode + ' '}events.")
    for event in events:
        when = event.start_date.isoformat()
        if event.end_date != event.start_date:
            when += f" - {event.end_date.isoformat()}"
        note = f" ({event.note})" if event.note else ""
        print(f"  {when}  {event.title}{note}")


def cmd_override(school: SchoolCalendar, args) -> None:
    if args.action == "list":
        overrides = school.overrides()
        if not overrides:
            print("No overrides saved.")
        for day, value in overrides.items():
            shown = value if len(value) <= 60 else value[:60] + "..."
            print(f"  {day.isoformat()}  {shown}")
        return

    if args.action == "clear":
        school.clear_overrides()
        print("All overrides cleared.")
        return

    if not args.date:
        print("Error: a date is required")
        sys.exit(1)
    day = parse_user_date(args.date, school)

    if args.action == "remove":
        school.remove_override(day)
        print(f"Override removed for {day.isoformat()}")
        return

    if args.custom_file:
        periods = load_custom_periods(Path(args.custom_file))
        value = encode_custom_override(periods)
    elif args.value:
        value = args.value
    else:
        print("Error: give a schedule name or --custom-file")
        sys.exit(1)

    school.set_override(day, value)
    print(f"Override set for {day.isoformat()}")


def cmd_export_ics(school: SchoolCalendar, args) -> None:
    generator = ICalendarGenerator(school)
    calendar = generator.generate_calendar(include_periods=args.periods)
    generator.export_to_file(calendar, args.output)
    print(f"Saved calendar to: {args.output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="School days and periods: countdowns, bell schedules and overrides"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="School configuration JSON (default: $SCHOOLCAL_CONFIG or ./school.json)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON"
    )
    sub = parser.add_subparsers(dest="command")

    status = sub.add_parser("status", help="Days and periods left, today's schedule")
    status.add_argument("--now", help="Pretend the current time is this (e.g. 2025-09-03T10:00)")
    status.set_defaults(func=cmd_status)

    for name, func, help_text in (
        ("day", cmd_day, "Classify a date"),
        ("schedule", cmd_schedule, "Show the bell schedule for a date"),
        ("remaining", cmd_remaining, "Countdown from a date"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("date", nargs="?", help="YYYY-MM-DD or e.g. 'next wednesday' (default: today)")
        command.set_defaults(func=func)

    events = sub.add_parser("events", help="Marking periods, early releases and conferences")
    events.add_argument("date", nargs="?", help="Reference date (default: today)")
    events.add_argument(
        "--mode",
        choices=["upcoming", "past", "all"],
        default="upcoming",
        help="Events ending on or after the date, before it, or all of them"
    )
    events.set_defaults(func=cmd_events)

    override = sub.add_parser("override", help="Manage per-date schedule overrides")
    override.add_argument("action", choices=["set", "remove", "clear", "list"])
    override.add_argument("date", nargs="?")
    override.add_argument("value", nargs="?", help="Schedule name, e.g. DEFAULT or WED_LATE")
    override.add_argument("--custom-file", help="JSON list of periods for a custom schedule")
    override.set_defaults(func=cmd_override)

    export = sub.add_parser("export-ics", help="Write the school calendar as .ics")
    export.add_argument("output", help="Output .ics path")
    export.add_argument("--periods", action="store_true", help="Include every bell period")
    export.set_defaults(func=cmd_export_ics)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    if not getattr(args, "func", None):
        args.func = cmd_status
        args.now = None

    try:
        config = load_school_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    school = SchoolCalendar(config, get_override_store())

    try:
        args.func(school, args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
