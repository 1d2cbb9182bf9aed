"""
Remaining-time calculation module.

Counts school days and calendar days left in the year from a reference
date, and finds the next block of days off.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional

from .day_classifier import as_calendar_date, classify, date_range
from .models import CalendarRange, NonAttendanceRun, RemainingTime


def round_half_up(value: float, places: int = 1) -> float:
    """Round like a person would: 12.25 -> 12.3, not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def count_school_days(calendar_range: CalendarRange, non_attendance: Mapping[date, str],
                      after: Optional[date] = None) -> int:
    """Count school days in the year, optionally only those after a date."""
    start = calendar_range.start_date
    if after is not None and after >= start:
        start = after + timedelta(days=1)
    return sum(
        1 for day in date_range(start, calendar_range.end_date)
        if classify(day, calendar_range, non_attendance).is_school_day
    )


def remaining(from_date, calendar_range: CalendarRange,
              non_attendance: Mapping[date, str],
              total: Optional[int] = None) -> RemainingTime:
    """Compute the countdown from a reference date.

    School days are counted after from_date: the day in progress is not
    "remaining". Calendar days include from_date itself.

    Args:
        from_date: Reference date ("today")
        calendar_range: School year range
        non_attendance: Date -> label map of days off
        total: School days in the whole year, if already counted

    Returns:
        RemainingTime with counts and percent of school days completed
    """
    from_date = as_calendar_date(from_date)
    end = calendar_range.end_date
    if total is None:
        total = count_school_days(calendar_range, non_attendance)

    if from_date > end:
        school_left = 0
        calendar_left = 0
    else:
        school_left = count_school_days(calendar_range, non_attendance, after=from_date)
        calendar_left = (end - from_date).days + 1

    if total == 0:
        percent = 0.0
    else:
        percent = round_half_up(100 * (total - school_left) / total)

    return RemainingTime(
        school_days_remaining=school_left,
        calendar_days_remaining=calendar_left,
        percent_complete=percent,
        total_school_days=total,
    )


class RemainingTimeCalculator:
    """Countdown calculations bound to one school year."""

    def __init__(self, calendar_range: CalendarRange, non_attendance: Mapping[date, str]):
        self.calendar_range = calendar_range
        self.non_attendance = non_attendance
        self._total_school_days = None

    @property
    def total_school_days(self) -> int:
        if self._total_school_days is None:
            self._total_school_days = count_school_days(self.calendar_range, self.non_attendance)
        return self._total_school_days

    def remaining(self, from_date) -> RemainingTime:
        return remaining(from_date, self.calendar_range, self.non_attendance,
                         total=self.total_school_days)

    def next_non_attendance(self, from_date) -> Optional[NonAttendanceRun]:
        """Find the next run of consecutive days off with the same label.

        The search starts at from_date (or the first day of school, if later)
        and stops at the last day of school.

        Returns:
            NonAttendanceRun, or None when no days off remain
        """
        from_date = as_calendar_date(from_date)
        start = max(from_date, self.calendar_range.start_date)
        end = self.calendar_range.end_date

        for day in date_range(start, end):
            label = self.non_attendance.get(day)
            if label is None:
                continue
            run_end = day
            for following in date_range(day + timedelta(days=1), end):
                if self.non_attendance.get(following) != label:
                    break
                run_end = following
            return NonAttendanceRun(
                label=label,
                start_date=day,
                end_date=run_end,
                is_today=(day == from_date),
            )
        return None
