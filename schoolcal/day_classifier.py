"""
Day classification module.

Decides whether a calendar date is a school day, a weekend, a holiday or
outside the school year. Everything here works on plain calendar dates;
callers convert "now" to the school's local date before asking.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Iterator, Mapping

from .models import CalendarRange, DayClassification, DayStatus, NonAttendanceEntry

SATURDAY = 5


def as_calendar_date(value) -> date:
    """Strip any time component, keeping the wall-clock date.

    Raises:
        TypeError: If value is not a date or datetime
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected a date, got {type(value).__name__}")


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() >= SATURDAY


def build_non_attendance_map(entries: Iterable[NonAttendanceEntry]) -> Dict[date, str]:
    """Expand non-attendance entries into one key per day off.

    When two entries cover the same date the later one wins. Overlaps are
    expected to be rejected upstream, so no error is raised here.

    Args:
        entries: Labeled date ranges (holidays and breaks)

    Returns:
        Dict mapping each covered date to its label
    """
    non_attendance = {}
    for entry in entries:
        for day in date_range(entry.start_date, entry.end_date):
            non_attendance[day] = entry.label
    return non_attendance


def classify(day, calendar_range: CalendarRange,
             non_attendance: Mapping[date, str]) -> DayClassification:
    """Classify a single date.

    Checks are applied in order: before the first day, after the last day,
    listed as non-attendance, Saturday/Sunday, otherwise a school day.
    """
    day = as_calendar_date(day)
    if day < calendar_range.start_date:
        return DayClassification(DayStatus.NOT_STARTED)
    if day > calendar_range.end_date:
        return DayClassification(DayStatus.COMPLETED)
    label = non_attendance.get(day)
    if label is not None:
        return DayClassification(DayStatus.HOLIDAY, label)
    if is_weekend(day):
        return DayClassification(DayStatus.WEEKEND, "Weekend")
    return DayClassification(DayStatus.SCHOOL_DAY)


class DayClassifier:
    """Classifies dates against one school year and its days off."""

    def __init__(self, calendar_range: CalendarRange,
                 entries: Iterable[NonAttendanceEntry] = ()):
        """Initialize classifier.

        Args:
            calendar_range: First and last day of the school year
            entries: Non-attendance entries for that year
        """
        self.calendar_range = calendar_range
        self.non_attendance = build_non_attendance_map(entries)

    def classify(self, day) -> DayClassification:
        return classify(day, self.calendar_range, self.non_attendance)

    def is_school_day(self, day) -> bool:
        return self.classify(day).is_school_day

    def school_days(self, start: date = None, end: date = None) -> Iterator[date]:
        """Yield school days between start and end (default: the whole year)."""
        start = as_calendar_date(start) if start is not None else self.calendar_range.start_date
        end = as_calendar_date(end) if end is not None else self.calendar_range.end_date
        for day in date_range(start, end):
            if self.is_school_day(day):
                yield day
