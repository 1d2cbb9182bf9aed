"""Unit tests for schedule resolution."""

import json
import pytest
from datetime import date, datetime, time

from pytz import timezone

from schoolcal.models import DateList, Period
from schoolcal.override_store import InMemoryOverrideStore, encode_custom_override
from schoolcal.schedule_resolver import (
    DateListTier, DefaultTier, OverrideTier, ScheduleResolver, SpecialDateTier,
    WeekdayTier, parse_custom_periods, resolve_schedule,
)

CHICAGO = timezone("America/Chicago")

THURSDAY = date(2025, 9, 4)
PLAIN_WEDNESDAY = date(2025, 8, 13)     # not in the late-start list
LISTED_WEDNESDAY = date(2025, 9, 3)     # in the late-start list
LATE_ARRIVAL_WEDNESDAY = date(2026, 1, 7)  # in both lists


@pytest.fixture
def resolver(school_config, overrides):
    return ScheduleResolver(
        school_config.schedules,
        school_config.default_schedule,
        override_store=overrides,
        special_dates=school_config.special_dates,
        date_lists=school_config.date_lists,
        weekday_rules=school_config.weekday_rules,
        timezone_str=school_config.timezone,
    )


def test_tiers_are_in_precedence_order(resolver, school_config):
    kinds = [type(tier) for tier in resolver.tiers]
    assert kinds == [OverrideTier, SpecialDateTier] + [DateListTier] * len(school_config.date_lists) + [WeekdayTier, DefaultTier]


def test_thursday_uses_default(resolver):
    resolved = resolver.resolve(THURSDAY)
    assert resolved.name == "DEFAULT"
    assert resolved.source == "default"
    assert resolved.is_default
    assert resolved.warnings == []


def test_wednesday_rule_selects_late_start(resolver):
    """A Wednesday outside every list still gets WED_LATE via the weekday rule."""
    resolved = resolver.resolve(PLAIN_WEDNESDAY)
    assert resolved.name == "WED_LATE"
    assert resolved.source == "weekday"
    first = resolved.periods[0]
    assert (first.start.hour, first.start.minute) == (9, 40)


def test_periods_are_anchored_to_the_requested_date(resolver):
    resolved = resolver.resolve(THURSDAY)
    first = resolved.periods[0]
    assert first.start == CHICAGO.localize(datetime(2025, 9, 4, 8, 10))
    assert first.end == CHICAGO.localize(datetime(2025, 9, 4, 8, 52))
    assert first.start.utcoffset() == CHICAGO.localize(datetime(2025, 9, 4)).utcoffset()
    assert all(p.start.date() == THURSDAY for p in resolved.periods)


def test_listed_wednesday_comes_from_the_list(resolver):
    resolved = resolver.resolve(LISTED_WEDNESDAY)
    assert resolved.name == "WED_LATE"
    assert resolved.source == "list:late_wednesdays"


def test_first_matching_list_wins(resolver):
    """Jan 7 is in both lists; late arrival is listed first."""
    resolved = resolver.resolve(LATE_ARRIVAL_WEDNESDAY)
    assert resolved.name == "LATE_ARRIVAL_1010"
    assert resolved.source == "list:late_arrival_1010"


def test_override_beats_list_and_weekday(resolver, overrides):
    """An explicit DEFAULT override wins over list membership and Wednesday."""
    overrides.set(LATE_ARRIVAL_WEDNESDAY, "DEFAULT")
    resolved = resolver.resolve(LATE_ARRIVAL_WEDNESDAY)
    assert resolved.name == "DEFAULT"
    assert resolved.source == "override"
    assert (resolved.periods[0].start.hour, resolved.periods[0].start.minute) == (8, 10)


def test_removing_override_restores_rules(resolver, overrides):
    overrides.set(PLAIN_WEDNESDAY, "DEFAULT")
    overrides.remove(PLAIN_WEDNESDAY)
    assert resolver.resolve(PLAIN_WEDNESDAY).name == "WED_LATE"


def test_special_date_beats_lists_but_not_overrides(school_config, overrides):
    resolver = ScheduleResolver(
        school_config.schedules, "DEFAULT",
        override_store=overrides,
        special_dates={LISTED_WEDNESDAY: "LATE_ARRIVAL_1010"},
        date_lists=school_config.date_lists,
        weekday_rules=school_config.weekday_rules,
    )
    resolved = resolver.resolve(LISTED_WEDNESDAY)
    assert resolved.name == "LATE_ARRIVAL_1010"
    assert resolved.source == "special_date"

    overrides.set(LISTED_WEDNESDAY, "WED_LATE")
    assert resolver.resolve(LISTED_WEDNESDAY).source == "override"


def test_missing_special_date_schedule_falls_through(school_config):
    resolver = ScheduleResolver(
        school_config.schedules, "DEFAULT",
        special_dates={LISTED_WEDNESDAY: "EXAM_DAY"},
        date_lists=school_config.date_lists,
        weekday_rules=school_config.weekday_rules,
    )
    resolved = resolver.resolve(LISTED_WEDNESDAY)
    assert resolved.source == "list:late_wednesdays"
    assert len(resolved.warnings) == 1
    assert "EXAM_DAY" in resolved.warnings[0]


def test_missing_weekday_schedule_falls_back_to_default(school_config):
    resolver = ScheduleResolver(
        school_config.schedules, "DEFAULT",
        weekday_rules={2: "NO_SUCH_SCHEDULE"},
    )
    resolved = resolver.resolve(PLAIN_WEDNESDAY)
    assert resolved.name == "DEFAULT"
    assert resolved.warnings


def test_missing_list_schedule_falls_through(school_config):
    resolver = ScheduleResolver(
        school_config.schedules, "DEFAULT",
        date_lists=[DateList("assembly", "ASSEMBLY", frozenset([THURSDAY]))],
    )
    resolved = resolver.resolve(THURSDAY)
    assert resolved.name == "DEFAULT"
    assert "ASSEMBLY" in resolved.warnings[0]


def test_unknown_named_override_falls_through(resolver, overrides):
    overrides.set(PLAIN_WEDNESDAY, "NOT_A_SCHEDULE")
    resolved = resolver.resolve(PLAIN_WEDNESDAY)
    assert resolved.name == "WED_LATE"
    assert resolved.source == "weekday"
    assert resolved.warnings


def test_custom_override(resolver, overrides):
    periods = [
        Period("01", "Assembly", time(8, 10), time(9, 30)),
        Period("02", "Period 02", time(9, 35), time(10, 20)),
    ]
    overrides.set(THURSDAY, encode_custom_override(periods))
    resolved = resolver.resolve(THURSDAY)
    assert resolved.name == "CUSTOM"
    assert resolved.source == "override"
    assert [p.label for p in resolved.periods] == ["Assembly", "Period 02"]
    assert resolved.periods[1].end == CHICAGO.localize(datetime(2025, 9, 4, 10, 20))


@pytest.mark.parametrize("value", [
    "CUSTOM:[]",
    "CUSTOM:not json",
    "CUSTOM:{}",
    "CUSTOM:" + json.dumps([{"start": "10:00", "end": "09:00"}]),
    "CUSTOM:" + json.dumps([{"start": "08:00", "end": "09:00"}, {"start": "08:30", "end": "09:30"}]),
    "CUSTOM:" + json.dumps([{"start": "8 o'clock", "end": "09:00"}]),
    "CUSTOM:" + json.dumps([{"end": "09:00"}]),
])
def test_malformed_custom_override_falls_back_to_default(resolver, overrides, value):
    """Bad custom schedules are ignored with a warning, even on a Wednesday."""
    overrides.set(PLAIN_WEDNESDAY, value)
    resolved = resolver.resolve(PLAIN_WEDNESDAY)
    assert resolved.name == "DEFAULT"
    assert resolved.source == "default"
    assert len(resolved.warnings) == 1
    assert "ignored" in resolved.warnings[0]


def test_parse_custom_periods_accepts_pairs():
    periods, error = parse_custom_periods(
        'CUSTOM:[{"id": "01", "start": [9, 40], "end": [10, 14], "include": true}]'
    )
    assert error is None
    assert periods[0].start_time == time(9, 40)


def test_resolution_is_idempotent(resolver, overrides):
    overrides.set(THURSDAY, "CUSTOM:[]")
    for day in (THURSDAY, PLAIN_WEDNESDAY, LISTED_WEDNESDAY, LATE_ARRIVAL_WEDNESDAY):
        assert resolver.resolve(day) == resolver.resolve(day)


def test_include_only_replaces_period_flags(school_config):
    resolver = ScheduleResolver(
        school_config.schedules, "DEFAULT", include_only=["01", "HR"],
    )
    counted = [p.id for p in resolver.resolve(THURSDAY).periods if p.counts_toward_remaining]
    assert counted == ["01", "HR"]


def test_homeroom_is_not_counted_by_default(resolver):
    homeroom = [p for p in resolver.resolve(THURSDAY).periods if p.id == "HR"][0]
    assert not homeroom.counts_toward_remaining


def test_unknown_default_is_rejected(school_config):
    with pytest.raises(ValueError):
        ScheduleResolver(school_config.schedules, "MISSING")


def test_resolver_without_store_skips_override_tier(school_config):
    resolver = ScheduleResolver(school_config.schedules, "DEFAULT")
    assert not any(isinstance(t, OverrideTier) for t in resolver.tiers)


def test_resolve_schedule_function(school_config):
    store = InMemoryOverrideStore({"2025-08-13": "DEFAULT"})
    resolved = resolve_schedule(
        PLAIN_WEDNESDAY, school_config.schedules, "DEFAULT",
        overrides=store, weekday_rules={2: "WED_LATE"},
    )
    assert resolved.name == "DEFAULT"
    assert resolved.source == "override"
