"""
Schedule resolution module.

Decides which bell schedule applies to a date. Resolution walks an ordered
list of tiers and the first tier that matches wins:

1. per-date override (from the override store)
2. special-date table
3. named date lists (late arrival, late-start Wednesdays, ...)
4. weekday rule
5. default schedule

The returned periods are anchored to the requested date as timezone-aware
datetimes in the school's time zone.
"""

import json
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pytz import timezone

from .day_classifier import as_calendar_date
from .models import (
    AnchoredPeriod, DateList, Period, ResolvedSchedule, Schedule,
    deserialize_period,
)
from .override_store import CUSTOM_PREFIX, OverrideStore, is_custom_override

logger = logging.getLogger(__name__)

CUSTOM_SCHEDULE_NAME = "CUSTOM"


def parse_custom_periods(value: str) -> Tuple[Optional[List[Period]], Optional[str]]:
    """Parse a ``CUSTOM:<json>`` override into periods.

    Returns:
        (periods, None) when valid, (None, reason) when malformed
    """
    raw = value[len(CUSTOM_PREFIX):] if value.startswith(CUSTOM_PREFIX) else value
    try:
        items = json.loads(raw)
    except ValueError:
        return None, "custom schedule is not valid JSON"

    if not isinstance(items, list) or not items:
        return None, "custom schedule must be a non-empty list of periods"

    periods = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            return None, f"period {i + 1} is not an object"
        try:
            period = deserialize_period(item, i)
        except (KeyError, TypeError, ValueError) as e:
            return None, f"period {i + 1} has an invalid time ({e})"
        if not period.is_valid():
            return None, f"period {i + 1} ends before it starts"
        if periods and period.start_time < periods[-1].end_time:
            return None, f"period {i + 1} starts before period {i} ends"
        periods.append(period)

    return periods, None


class ScheduleTier:
    """One step of the resolution chain.

    ``match`` returns (schedule, source) or None when the tier does not
    apply. Problems worth reporting are appended to ``warnings``.
    """

    source = "tier"

    def match(self, day: date, warnings: List[str]) -> Optional[Tuple[Schedule, str]]:
        raise NotImplementedError

    @staticmethod
    def _lookup(catalog: Mapping[str, Schedule], name: str, where: str,
                warnings: List[str]) -> Optional[Schedule]:
        schedule = catalog.get(name)
        if schedule is None:
            message = f"{where} refers to unknown schedule '{name}'; ignored"
            warnings.append(message)
            logger.warning(message)
        return schedule


class OverrideTier(ScheduleTier):
    """Administrator-set override for a single date."""

    source = "override"

    def __init__(self, store: OverrideStore, catalog: Mapping[str, Schedule],
                 default: Schedule):
        self.store = store
        self.catalog = catalog
        self.default = default

    def match(self, day, warnings):
        value = self.store.get(day)
        if not value:
            return None

        if is_custom_override(value):
            periods, error = parse_custom_periods(value)
            if error:
                message = f"Override for {day.isoformat()} ignored: {error}"
                warnings.append(message)
                logger.warning(message)
                return self.default, "default"
            return Schedule(name=CUSTOM_SCHEDULE_NAME, periods=tuple(periods)), self.source

        schedule = self._lookup(self.catalog, value, f"Override for {day.isoformat()}", warnings)
        if schedule is None:
            return None
        return schedule, self.source


class SpecialDateTier(ScheduleTier):
    """Static date -> schedule name table (exam days, assemblies)."""

    source = "special_date"

    def __init__(self, special_dates: Mapping[date, str], catalog: Mapping[str, Schedule]):
        self.special_dates = dict(special_dates)
        self.catalog = catalog

    def match(self, day, warnings):
        name = self.special_dates.get(day)
        if name is None:
            return None
        schedule = self._lookup(self.catalog, name, f"Special date {day.isoformat()}", warnings)
        if schedule is None:
            return None
        return schedule, self.source


class DateListTier(ScheduleTier):
    """Membership in a named date list selects that list's schedule."""

    def __init__(self, date_list: DateList, catalog: Mapping[str, Schedule]):
        self.date_list = date_list
        self.catalog = catalog
        self.source = f"list:{date_list.name}"

    def match(self, day, warnings):
        if day not in self.date_list.dates:
            return None
        schedule = self._lookup(
            self.catalog, self.date_list.schedule_name,
            f"Date list '{self.date_list.name}'", warnings
        )
        if schedule is None:
            return None
        return schedule, self.source


class WeekdayTier(ScheduleTier):
    """Weekday -> alternate schedule (0=Monday, ..., 6=Sunday)."""

    source = "weekday"
    DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

    def __init__(self, weekday_rules: Mapping[int, str], catalog: Mapping[str, Schedule]):
        self.weekday_rules = dict(weekday_rules)
        self.catalog = catalog

    def match(self, day, warnings):
        name = self.weekday_rules.get(day.weekday())
        if name is None:
            return None
        schedule = self._lookup(
            self.catalog, name, f"{self.DAY_NAMES[day.weekday()]} rule", warnings
        )
        if schedule is None:
            return None
        return schedule, self.source


class DefaultTier(ScheduleTier):
    source = "default"

    def __init__(self, default: Schedule):
        self.default = default

    def match(self, day, warnings):
        return self.default, self.source


class ScheduleResolver:
    """Resolves dates to anchored bell schedules."""

    def __init__(self,
                 catalog: Mapping[str, Schedule],
                 default_name: str,
                 override_store: Optional[OverrideStore] = None,
                 special_dates: Optional[Mapping[date, str]] = None,
                 date_lists: Iterable[DateList] = (),
                 weekday_rules: Optional[Mapping[int, str]] = None,
                 timezone_str: str = "America/Chicago",
                 include_only: Optional[Iterable[str]] = None):
        """Initialize resolver.

        Args:
            catalog: Schedules by name
            default_name: Name of the fallback schedule (must be in catalog)
            override_store: Per-date overrides; None disables the override tier
            special_dates: Date -> schedule name table
            date_lists: Named date lists, checked in the given order
            weekday_rules: Weekday (0=Monday) -> schedule name
            timezone_str: School time zone used to anchor periods
            include_only: Period ids that count toward remaining periods.
                          None keeps each period's own flag.

        Raises:
            ValueError: If default_name is not in the catalog
        """
        if default_name not in catalog:
            raise ValueError(f"Default schedule '{default_name}' is not in the catalog")

        self.catalog = dict(catalog)
        self.default = self.catalog[default_name]
        self.tz = timezone(timezone_str)
        self.include_only = frozenset(include_only) if include_only is not None else None

        self.tiers: List[ScheduleTier] = []
        if override_store is not None:
            self.tiers.append(OverrideTier(override_store, self.catalog, self.default))
        self.tiers.append(SpecialDateTier(special_dates or {}, self.catalog))
        for date_list in date_lists:
            self.tiers.append(DateListTier(date_list, self.catalog))
        self.tiers.append(WeekdayTier(weekday_rules or {}, self.catalog))
        self.tiers.append(DefaultTier(self.default))

    def resolve(self, day) -> ResolvedSchedule:
        """Resolve the schedule for a date.

        Args:
            day: Calendar date (a datetime is reduced to its date)

        Returns:
            ResolvedSchedule with periods anchored to that date
        """
        day = as_calendar_date(day)
        warnings: List[str] = []

        for tier in self.tiers:
            matched = tier.match(day, warnings)
            if matched is not None:
                schedule, source = matched
                return ResolvedSchedule(
                    date=day,
                    name=schedule.name,
                    source=source,
                    periods=self.anchor(schedule, day),
                    warnings=warnings,
                )

        # DefaultTier always matches
        raise RuntimeError("Schedule resolution chain has no default tier")

    def anchor(self, schedule: Schedule, day: date) -> List[AnchoredPeriod]:
        """Place a schedule's clock times on a concrete date."""
        anchored = []
        for period in schedule.periods:
            if self.include_only is not None:
                counts = period.id in self.include_only
            else:
                counts = period.counts_toward_remaining
            anchored.append(AnchoredPeriod(
                id=period.id,
                label=period.label,
                start=self.tz.localize(datetime.combine(day, period.start_time)),
                end=self.tz.localize(datetime.combine(day, period.end_time)),
                counts_toward_remaining=counts,
            ))
        return anchored


def resolve_schedule(day, catalog: Mapping[str, Schedule], default_name: str,
                     overrides: Optional[OverrideStore] = None,
                     special_dates: Optional[Mapping[date, str]] = None,
                     date_lists: Iterable[DateList] = (),
                     weekday_rules: Optional[Mapping[int, str]] = None,
                     timezone_str: str = "America/Chicago") -> ResolvedSchedule:
    """One-shot resolution without keeping a resolver around."""
    resolver = ScheduleResolver(
        catalog, default_name,
        override_store=overrides,
        special_dates=special_dates,
        date_lists=date_lists,
        weekday_rules=weekday_rules,
        timezone_str=timezone_str,
    )
    return resolver.resolve(day)
