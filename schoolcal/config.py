"""
Configuration for the school calendar.

Settings come from environment variables; the school itself (year range,
days off, bell schedules and schedule rules) comes from a JSON file shaped
like this::

    {
      "name": "North High",
      "timezone": "America/Chicago",
      "first_day": "2025-08-12",
      "last_day": "2026-05-21",
      "non_attendance": [{"label": "Labor Day", "start": "2025-09-01", "end": "2025-09-01"}],
      "schedules": {"DEFAULT": [{"id": "01", "label": "Period 01",
                                 "start": "08:10", "end": "08:52", "include": true}]},
      "default_schedule": "DEFAULT",
      "special_dates": {"2025-12-17": "EXAM_DEC17"},
      "date_lists": [{"name": "late_arrival", "schedule": "LATE_ARRIVAL_1010",
                      "dates": ["2025-09-05"]}],
      "weekday_rules": {"wednesday": "WED_LATE"},
      "include_only": null,
      "marking_periods": [{"title": "Quarter 1", "start": "2025-08-12", "end": "2025-10-10"}],
      "early_release": [{"date": "2025-11-25", "time": "12:30", "title": "Thanksgiving"}],
      "pt_events": [{"date": "2025-10-16", "time": "16:00", "title": "Parent-Teacher Conferences"}]
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from pytz import UnknownTimeZoneError, timezone

from .models import (
    CalendarEvent, CalendarRange, DateList, NonAttendanceEntry, Schedule,
    deserialize_date, deserialize_period,
)

DEFAULT_TIMEZONE = "America/Chicago"
DEFAULT_CONFIG_PATH = "school.json"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}


class ConfigError(ValueError):
    """The school configuration file is missing or malformed."""


@dataclass
class SchoolConfig:
    """Everything the calendar engine needs to know about one school year."""
    name: str
    calendar_range: CalendarRange
    schedules: Dict[str, Schedule]
    default_schedule: str
    timezone: str = DEFAULT_TIMEZONE
    non_attendance: List[NonAttendanceEntry] = field(default_factory=list)
    special_dates: Dict[date, str] = field(default_factory=dict)
    date_lists: List[DateList] = field(default_factory=list)
    weekday_rules: Dict[int, str] = field(default_factory=dict)
    include_only: Optional[List[str]] = None
    events: List[CalendarEvent] = field(default_factory=list)


def configure_logging(level: Optional[str] = None):
    """Set up root logging once for the CLI and the web app."""
    level = level or os.getenv("SCHOOLCAL_LOG_LEVEL", "INFO")
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def config_path_from_env() -> Path:
    return Path(os.getenv("SCHOOLCAL_CONFIG", DEFAULT_CONFIG_PATH))


def load_school_config(path: Optional[Path] = None) -> SchoolConfig:
    """Load the school configuration file.

    Args:
        path: JSON file. Defaults to SCHOOLCAL_CONFIG or ./school.json

    Raises:
        ConfigError: If the file is missing or invalid
    """
    path = Path(path) if path is not None else config_path_from_env()
    if not path.exists():
        raise ConfigError(f"School configuration not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{path} is not valid JSON: {e}")

    return parse_school_config(data)


def parse_school_config(data: dict) -> SchoolConfig:
    """Build a SchoolConfig from its JSON dict.

    Raises:
        ConfigError: If required keys are missing or values are invalid
    """
    if not isinstance(data, dict):
        raise ConfigError("School configuration must be a JSON object")

    try:
        calendar_range = CalendarRange(
            start_date=deserialize_date(data["first_day"]),
            end_date=deserialize_date(data["last_day"]),
        )
        non_attendance = [
            NonAttendanceEntry(
                label=item["label"],
                start_date=deserialize_date(item["start"]),
                end_date=deserialize_date(item.get("end") or item["start"]),
            )
            for item in data.get("non_attendance", [])
        ]
        schedules = _parse_schedules(data.get("schedules", {}))
        special_dates = {
            deserialize_date(key): name
            for key, name in data.get("special_dates", {}).items()
        }
        date_lists = [
            DateList(
                name=item["name"],
                schedule_name=item["schedule"],
                dates=frozenset(deserialize_date(d) for d in item.get("dates", [])),
            )
            for item in data.get("date_lists", [])
        ]
        weekday_rules = {
            _parse_weekday(day): name
            for day, name in data.get("weekday_rules", {}).items()
        }
        events = _parse_events(data)
    except ConfigError:
        raise
    except KeyError as e:
        raise ConfigError(f"Missing required setting: {e.args[0]}")
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e))

    default_schedule = data.get("default_schedule", "DEFAULT")
    if default_schedule not in schedules:
        raise ConfigError(f"Default schedule '{default_schedule}' is not defined")
    schedules[default_schedule] = replace(schedules[default_schedule], is_default=True)

    tz_name = os.getenv("SCHOOLCAL_TIMEZONE") or data.get("timezone", DEFAULT_TIMEZONE)
    try:
        timezone(tz_name)
    except UnknownTimeZoneError:
        raise ConfigError(f"Unknown time zone: {tz_name}")

    include_only = data.get("include_only")
    if include_only is not None:
        include_only = [str(p) for p in include_only]

    return SchoolConfig(
        name=data.get("name", "School"),
        calendar_range=calendar_range,
        schedules=schedules,
        default_schedule=default_schedule,
        timezone=tz_name,
        non_attendance=non_attendance,
        special_dates=special_dates,
        date_lists=date_lists,
        weekday_rules=weekday_rules,
        include_only=include_only,
        events=events,
    )


def _parse_schedules(raw: dict) -> Dict[str, Schedule]:
    schedules = {}
    for name, periods in raw.items():
        parsed = tuple(deserialize_period(p, i) for i, p in enumerate(periods))
        previous = None
        for period in parsed:
            if not period.is_valid():
                raise ConfigError(
                    f"Schedule {name}: {period.label} ends before it starts"
                )
            if previous is not None and period.start_time < previous.end_time:
                raise ConfigError(
                    f"Schedule {name}: {period.label} starts before {previous.label} ends"
                )
            previous = period
        schedules[name] = Schedule(name=name, periods=parsed)
    return schedules


def _parse_weekday(value) -> int:
    if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
        day = int(value)
        if 0 <= day <= 6:
            return day
    elif isinstance(value, str) and value.strip().lower() in WEEKDAYS:
        return WEEKDAYS[value.strip().lower()]
    raise ConfigError(f"Unknown weekday in weekday_rules: {value!r}")


def _parse_events(data: dict) -> List[CalendarEvent]:
    events = []
    for item in data.get("marking_periods", []):
        events.append(CalendarEvent(
            kind="marking_period",
            title=item["title"],
            start_date=deserialize_date(item["start"]),
            end_date=deserialize_date(item.get("end") or item["start"]),
            note=item.get("note"),
        ))
    for item in data.get("early_release", []):
        day = deserialize_date(item["date"])
        events.append(CalendarEvent(
            kind="early_release",
            title=item.get("title") or "Early release",
            start_date=day,
            end_date=day,
            note=item.get("time"),
        ))
    for item in data.get("pt_events", []):
        day = deserialize_date(item["date"])
        events.append(CalendarEvent(
            kind="pt_event",
            title=item.get("title") or "Parent-teacher conferences",
            start_date=day,
            end_date=day,
            note=item.get("time"),
        ))
    events.sort(key=lambda e: (e.start_date, e.end_date))
    return events
