"""
Data models for the school days & periods calendar.

This module defines all the data structures used throughout the application.
All models use Python dataclasses. Dates are plain ``datetime.date`` values
(year/month/day only, no time and no zone); anything with a clock time is
anchored to the school's time zone by the schedule resolver.

These models represent:
- The school year date range
- Non-attendance entries (holidays and breaks)
- Bell schedules and their periods
- Derived results (day classification, remaining time, period status)
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DayStatus(str, Enum):
    """Classification of a single calendar date."""
    SCHOOL_DAY = "school_day"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    NOT_STARTED = "not_started"
    COMPLETED = "completed"


@dataclass(frozen=True)
class CalendarRange:
    """First and last day of the school year, both inclusive.

    Raises:
        ValueError: If start_date is not before end_date
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(
                f"School year must start before it ends "
                f"({self.start_date.isoformat()} >= {self.end_date.isoformat()})"
            )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class NonAttendanceEntry:
    """A labeled range of days students do not attend (holiday or break)."""
    label: str                  # e.g., "Labor Day", "Winter Break"
    start_date: date            # First day off (inclusive)
    end_date: date              # Last day off (inclusive)

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"Non-attendance entry '{self.label}' ends before it starts"
            )


@dataclass(frozen=True)
class Period:
    """One named time block of a bell schedule.

    Periods never cross midnight. Homeroom-style blocks set
    counts_toward_remaining to False so they are skipped by the
    "periods left today" count.
    """
    id: str                     # e.g., "01", "HR"
    label: str                  # e.g., "Period 01", "Homeroom"
    start_time: time
    end_time: time
    counts_toward_remaining: bool = True

    def is_valid(self) -> bool:
        return self.start_time < self.end_time


@dataclass(frozen=True)
class Schedule:
    """A named, ordered list of periods."""
    name: str                   # e.g., "DEFAULT", "WED_LATE", "LATE_ARRIVAL_1010"
    periods: tuple = ()
    is_default: bool = False


@dataclass(frozen=True)
class DateList:
    """Named list of dates that all use one alternate schedule.

    e.g. the late-start Wednesdays, or the 10:10 late arrival days.
    """
    name: str
    schedule_name: str
    dates: frozenset = frozenset()


@dataclass(frozen=True)
class AnchoredPeriod:
    """A period placed on a concrete date with timezone-aware datetimes."""
    id: str
    label: str
    start: datetime
    end: datetime
    counts_toward_remaining: bool

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass
class ResolvedSchedule:
    """The schedule that applies to one date, anchored to that date.

    ``source`` names the resolution tier that produced it
    ("override", "special_date", "list:<name>", "weekday" or "default").
    ``warnings`` carries non-fatal problems met while resolving, such as a
    malformed custom override that was ignored.
    """
    date: date
    name: str
    source: str
    periods: List[AnchoredPeriod] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return self.source == "default"


@dataclass(frozen=True)
class DayClassification:
    """Status of a date plus the holiday label when there is one."""
    status: DayStatus
    label: Optional[str] = None

    @property
    def is_school_day(self) -> bool:
        return self.status == DayStatus.SCHOOL_DAY

    def describe(self) -> str:
        """Human-readable status line, e.g. "No school: Labor Day"."""
        if self.status == DayStatus.NOT_STARTED:
            return "Not started"
        if self.status == DayStatus.COMPLETED:
            return "Completed"
        if self.status == DayStatus.HOLIDAY:
            return f"No school: {self.label}"
        if self.status == DayStatus.WEEKEND:
            return "No school: Weekend"
        return "School day"


@dataclass(frozen=True)
class RemainingTime:
    """Countdown numbers from a reference date to the last day of school."""
    school_days_remaining: int
    calendar_days_remaining: int
    percent_complete: float
    total_school_days: int


@dataclass(frozen=True)
class PeriodStatus:
    """Where "now" falls inside a resolved schedule."""
    current_period_index: Optional[int]
    remaining_periods: int


@dataclass(frozen=True)
class NonAttendanceRun:
    """The next block of consecutive days off sharing one label."""
    label: str
    start_date: date
    end_date: date
    is_today: bool


@dataclass(frozen=True)
class CalendarEvent:
    """A dated informational item (marking period, early release, conference)."""
    kind: str                   # "marking_period", "early_release" or "pt_event"
    title: str
    start_date: date
    end_date: date
    note: Optional[str] = None


@dataclass
class DashboardSnapshot:
    """Everything the "today" view shows, computed from one clock reading."""
    today: date
    now: datetime
    classification: DayClassification
    schedule: ResolvedSchedule
    remaining: RemainingTime
    periods: PeriodStatus
    next_non_attendance: Optional[NonAttendanceRun] = None
    summary: str = ""


# Serialization helpers for JSON conversion

def serialize_date(d: date) -> str:
    """Convert date to YYYY-MM-DD string."""
    return d.isoformat()


def deserialize_date(s: str) -> date:
    """Convert a YYYY-MM-DD string to a calendar date.

    Parsed field by field as a calendar date; never through an instant,
    so the result cannot shift by a day across time zones.
    """
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    if not isinstance(s, str):
        raise TypeError(f"Expected a YYYY-MM-DD string, got {type(s).__name__}")
    text = s.strip()
    if not ISO_DATE_RE.match(text):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {s!r}")
    return date.fromisoformat(text)


def serialize_datetime(dt: datetime) -> str:
    """Convert datetime to ISO format string."""
    return dt.isoformat()


def serialize_time(t: time) -> str:
    """Convert time to HH:MM string."""
    return t.strftime("%H:%M")


def deserialize_time(value) -> time:
    """Convert "HH:MM" (or "HH:MM:SS") string or [hour, minute] pair to time."""
    if isinstance(value, time):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValueError(f"Time pair must be [hour, minute], got {value!r}")
        hour, minute = value
        return time(int(hour), int(minute))
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise ValueError(f"Unsupported time value: {value!r}")


def serialize_period(period: Period) -> dict:
    """Serialize Period to the dict shape used in config and overrides."""
    return {
        "id": period.id,
        "label": period.label,
        "start": serialize_time(period.start_time),
        "end": serialize_time(period.end_time),
        "include": period.counts_toward_remaining,
    }


def deserialize_period(data: dict, index: int = 0) -> Period:
    """Deserialize dict to Period.

    Missing ids and labels are filled from the position ("01" / "P1").

    Raises:
        ValueError: If data is not an object or "include" is not a boolean
        KeyError: If "start" or "end" is missing
    """
    if not isinstance(data, dict):
        raise ValueError(f"Period {index + 1} must be an object, got {type(data).__name__}")
    include = data.get("include", True)
    if not isinstance(include, bool):
        raise ValueError(f"Period {index + 1}: include must be true or false, got {include!r}")
    period_id = str(data.get("id") or f"{index + 1:02d}")
    return Period(
        id=period_id,
        label=data.get("label") or f"P{index + 1}",
        start_time=deserialize_time(data["start"]),
        end_time=deserialize_time(data["end"]),
        counts_toward_remaining=include,
    )


def serialize_classification(classification: DayClassification) -> dict:
    return {
        "status": classification.status.value,
        "label": classification.label,
        "is_school_day": classification.is_school_day,
        "description": classification.describe(),
    }


def serialize_resolved_schedule(schedule: ResolvedSchedule) -> dict:
    """Serialize ResolvedSchedule to a JSON-serializable dict."""
    return {
        "date": serialize_date(schedule.date),
        "name": schedule.name,
        "source": schedule.source,
        "periods": [
            {
                "id": p.id,
                "label": p.label,
                "start": serialize_datetime(p.start),
                "end": serialize_datetime(p.end),
                "counts_toward_remaining": p.counts_toward_remaining,
            }
            for p in schedule.periods
        ],
        "warnings": list(schedule.warnings),
    }


def serialize_remaining(remaining: RemainingTime) -> dict:
    return {
        "school_days_remaining": remaining.school_days_remaining,
        "calendar_days_remaining": remaining.calendar_days_remaining,
        "percent_complete": remaining.percent_complete,
        "total_school_days": remaining.total_school_days,
    }


def serialize_period_status(status: PeriodStatus) -> dict:
    return {
        "current_period_index": status.current_period_index,
        "remaining_periods": status.remaining_periods,
    }


def serialize_run(run: Optional[NonAttendanceRun]) -> Optional[dict]:
    if run is None:
        return None
    return {
        "label": run.label,
        "start_date": serialize_date(run.start_date),
        "end_date": serialize_date(run.end_date),
        "is_today": run.is_today,
    }


def serialize_event(event: CalendarEvent) -> dict:
    return {
        "kind": event.kind,
        "title": event.title,
        "start_date": serialize_date(event.start_date),
        "end_date": serialize_date(event.end_date),
        "note": event.note,
    }


def serialize_dashboard(snapshot: DashboardSnapshot) -> dict:
    """Serialize DashboardSnapshot to a JSON-serializable dict."""
    return {
        "today": serialize_date(snapshot.today),
        "now": serialize_datetime(snapshot.now),
        "summary": snapshot.summary,
        "classification": serialize_classification(snapshot.classification),
        "schedule": serialize_resolved_schedule(snapshot.schedule),
        "remaining": serialize_remaining(snapshot.remaining),
        "periods": serialize_period_status(snapshot.periods),
        "next_non_attendance": serialize_run(snapshot.next_non_attendance),
    }
