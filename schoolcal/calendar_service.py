"""
School calendar service.

Ties the day classifier, schedule resolver, remaining-time calculator and
period tracker together behind the four calls the service layer uses:
classify_day, resolve_schedule, compute_remaining and
compute_current_period. ``dashboard`` composes them from a single clock
reading so every number on the page agrees.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from pytz import timezone

from .config import SchoolConfig
from .day_classifier import DayClassifier, as_calendar_date
from .models import (
    CalendarEvent, DashboardSnapshot, DayClassification, NonAttendanceRun,
    PeriodStatus, RemainingTime, ResolvedSchedule,
)
from .override_store import InMemoryOverrideStore, OverrideStore, is_custom_override
from .period_tracker import PeriodTracker
from .remaining import RemainingTimeCalculator
from .schedule_resolver import ScheduleResolver, parse_custom_periods

logger = logging.getLogger(__name__)

EVENT_MODES = ("upcoming", "past", "all")


def plural(n: int, singular: str, plural_form: str) -> str:
    return f"{n} {singular if n == 1 else plural_form}"


class SchoolCalendar:
    """Day-status and remaining-time engine for one school year."""

    def __init__(self, config: SchoolConfig, override_store: Optional[OverrideStore] = None):
        """Initialize calendar.

        Args:
            config: School year configuration
            override_store: Per-date schedule overrides. Defaults to an
                            in-memory store that is lost on exit.
        """
        self.config = config
        self.tz = timezone(config.timezone)
        self.override_store = override_store if override_store is not None else InMemoryOverrideStore()

        self.classifier = DayClassifier(config.calendar_range, config.non_attendance)
        self.resolver = ScheduleResolver(
            config.schedules,
            config.default_schedule,
            override_store=self.override_store,
            special_dates=config.special_dates,
            date_lists=config.date_lists,
            weekday_rules=config.weekday_rules,
            timezone_str=config.timezone,
            include_only=config.include_only,
        )
        self.calculator = RemainingTimeCalculator(
            config.calendar_range, self.classifier.non_attendance
        )
        self.tracker = PeriodTracker(config.timezone)

    # Core operations

    def classify_day(self, day) -> DayClassification:
        return self.classifier.classify(day)

    def resolve_schedule(self, day) -> ResolvedSchedule:
        return self.resolver.resolve(day)

    def compute_remaining(self, from_date) -> RemainingTime:
        return self.calculator.remaining(from_date)

    def compute_current_period(self, resolved: ResolvedSchedule, now: datetime) -> PeriodStatus:
        """Period status for now, zeroed when the schedule's day has no school."""
        classification = self.classify_day(resolved.date)
        return self.tracker.track(resolved, now, classification)

    # Derived views

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        """Current moment in the school's time zone."""
        if now is None:
            return datetime.now(self.tz)
        return self.tracker.localize(now)

    def today(self, now: Optional[datetime] = None) -> date:
        """The school's calendar date at now."""
        return self.local_now(now).date()

    def next_non_attendance(self, from_date) -> Optional[NonAttendanceRun]:
        return self.calculator.next_non_attendance(from_date)

    def list_events(self, from_date, mode: str = "upcoming",
                    kind: Optional[str] = None) -> List[CalendarEvent]:
        """Marking periods, early releases and conferences relative to a date.

        Args:
            from_date: Reference date ("today")
            mode: "upcoming" (ends on or after from_date), "past" (ended
                  before it) or "all"
            kind: Only events of this kind

        Raises:
            ValueError: If mode is not one of EVENT_MODES
        """
        if mode not in EVENT_MODES:
            raise ValueError(f"Unknown event filter '{mode}', expected one of {', '.join(EVENT_MODES)}")
        from_date = as_calendar_date(from_date)
        events = []
        for event in self.config.events:
            if kind is not None and event.kind != kind:
                continue
            if mode == "upcoming" and event.end_date < from_date:
                continue
            if mode == "past" and event.end_date >= from_date:
                continue
            events.append(event)
        return events

    def upcoming_events(self, from_date, kind: Optional[str] = None) -> List[CalendarEvent]:
        return self.list_events(from_date, "upcoming", kind)

    def dashboard(self, now: Optional[datetime] = None) -> DashboardSnapshot:
        """Build the "today" snapshot from one clock reading.

        Args:
            now: Moment to report on. Defaults to the current time.
        """
        now = self.local_now(now)
        today = now.date()

        classification = self.classify_day(today)
        schedule = self.resolve_schedule(today)
        periods = self.tracker.track(schedule, now, classification)
        remaining = self.compute_remaining(today)

        summary = (
            f"{plural(remaining.school_days_remaining, 'day', 'days')} and "
            f"{plural(periods.remaining_periods, 'period', 'periods')} left"
        )
        logger.debug("Dashboard for %s: %s", today, summary)

        return DashboardSnapshot(
            today=today,
            now=now,
            classification=classification,
            schedule=schedule,
            remaining=remaining,
            periods=periods,
            next_non_attendance=self.next_non_attendance(today),
            summary=summary,
        )

    # Overrides

    def validate_override(self, value: str):
        """Check an override value before it is stored.

        Resolution tolerates bad values, but writers get told up front.

        Raises:
            ValueError: If the value names an unknown schedule or is a
                        malformed custom period list
        """
        if not value:
            raise ValueError("Override value must not be empty")
        if not isinstance(value, str):
            raise ValueError(f"Override value must be a string, got {type(value).__name__}")
        if is_custom_override(value):
            _, error = parse_custom_periods(value)
            if error:
                raise ValueError(f"Invalid custom schedule: {error}")
        elif value not in self.config.schedules:
            raise ValueError(f"Unknown schedule: {value}")

    def set_override(self, day, value: str):
        try:
            self.validate_override(value)
        except ValueError as e:
            logger.warning("Rejected override for %s: %s", day, e)
            raise
        self.override_store.set(as_calendar_date(day), value)

    def remove_override(self, day):
        self.override_store.remove(as_calendar_date(day))

    def clear_overrides(self):
        self.override_store.clear()

    def overrides(self) -> Dict[date, str]:
        return self.override_store.all()
