"""
Period tracking module.

Works out which period of a resolved schedule is running at a given moment
and how many counted periods have not ended yet.
"""

from datetime import datetime
from typing import Optional

from pytz import timezone

from .models import DayClassification, PeriodStatus, ResolvedSchedule

NO_PERIODS = PeriodStatus(current_period_index=None, remaining_periods=0)


class PeriodTracker:
    """Tracks the current period against the school's wall clock."""

    def __init__(self, timezone_str: str = "America/Chicago"):
        """Initialize tracker.

        Args:
            timezone_str: School time zone. Naive "now" values are read as
                          wall-clock time in this zone.
        """
        self.tz = timezone(timezone_str)

    def localize(self, now: datetime) -> datetime:
        """Bring now into the school's time zone."""
        if not isinstance(now, datetime):
            raise TypeError(f"Expected a datetime, got {type(now).__name__}")
        if now.tzinfo is None:
            return self.tz.localize(now)
        return now.astimezone(self.tz)

    def track(self, schedule: ResolvedSchedule, now: datetime,
              classification: Optional[DayClassification] = None) -> PeriodStatus:
        """Locate now within the schedule.

        Args:
            schedule: Schedule resolved for the day being tracked
            now: Current moment
            classification: Classification of that day. When given and not a
                            school day, no period is current and none remain;
                            the schedule is not consulted.

        Returns:
            PeriodStatus with the 0-based current period index (None when
            between or outside periods) and the count of counted periods
            that have not ended
        """
        if classification is not None and not classification.is_school_day:
            return NO_PERIODS

        now = self.localize(now)
        current = None
        remaining = 0
        for index, period in enumerate(schedule.periods):
            if current is None and period.contains(now):
                current = index
            if now < period.end and period.counts_toward_remaining:
                remaining += 1

        return PeriodStatus(current_period_index=current, remaining_periods=remaining)
