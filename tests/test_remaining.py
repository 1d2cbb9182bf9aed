"""Unit tests for remaining-time calculation."""

import pytest
from datetime import date

from schoolcal.day_classifier import DayClassifier, date_range
from schoolcal.models import CalendarRange, NonAttendanceEntry
import schoolcal.remaining as remaining_module
from schoolcal.remaining import RemainingTimeCalculator, remaining, round_half_up

# Two school weeks, Mon Sep 1 - Fri Sep 12, 2025, Labor Day off: 9 school days
SHORT_YEAR = CalendarRange(date(2025, 9, 1), date(2025, 9, 12))
SHORT_MAP = {date(2025, 9, 1): "Labor Day"}


def test_school_days_exclude_the_reference_day():
    """Today is in progress and never counts as remaining."""
    result = remaining(date(2025, 9, 2), SHORT_YEAR, SHORT_MAP)
    assert result.total_school_days == 9
    assert result.school_days_remaining == 8
    assert result.calendar_days_remaining == 11


def test_from_a_holiday():
    result = remaining(date(2025, 9, 1), SHORT_YEAR, SHORT_MAP)
    assert result.school_days_remaining == 9
    assert result.calendar_days_remaining == 12
    assert result.percent_complete == 0.0


def test_mid_year_percent_is_rounded_to_one_decimal():
    result = remaining(date(2025, 9, 5), SHORT_YEAR, SHORT_MAP)
    assert result.school_days_remaining == 5
    assert result.calendar_days_remaining == 8
    assert result.percent_complete == 44.4


def test_last_day_leaves_zero_school_days_and_one_calendar_day():
    result = remaining(SHORT_YEAR.end_date, SHORT_YEAR, SHORT_MAP)
    assert result.school_days_remaining == 0
    assert result.calendar_days_remaining == 1
    assert result.percent_complete == 100.0


def test_after_the_year_everything_is_zero():
    result = remaining(date(2025, 9, 13), SHORT_YEAR, SHORT_MAP)
    assert result.school_days_remaining == 0
    assert result.calendar_days_remaining == 0


def test_before_the_year_all_school_days_remain():
    result = remaining(date(2025, 8, 30), SHORT_YEAR, SHORT_MAP)
    assert result.school_days_remaining == 9
    assert result.calendar_days_remaining == 14
    assert result.percent_complete == 0.0


def test_no_school_days_gives_zero_percent():
    weekend = CalendarRange(date(2025, 9, 6), date(2025, 9, 7))
    result = remaining(date(2025, 9, 6), weekend, {})
    assert result.total_school_days == 0
    assert result.percent_complete == 0.0


def test_round_half_up():
    assert round_half_up(12.25) == 12.3
    assert round_half_up(0.25) == 0.3
    assert round_half_up(44.44444) == 44.4
    assert round_half_up(99.95) == 100.0


def test_total_matches_classified_school_days(school_config):
    """Summing SCHOOL_DAY classifications gives the total used for percent."""
    classifier = DayClassifier(school_config.calendar_range, school_config.non_attendance)
    year = school_config.calendar_range
    counted = sum(
        1 for day in date_range(year.start_date, year.end_date)
        if classifier.classify(day).is_school_day
    )
    calculator = RemainingTimeCalculator(year, classifier.non_attendance)
    assert calculator.total_school_days == counted
    assert calculator.remaining(date(2025, 10, 1)).total_school_days == counted
    # Everything not yet remaining has been classified as done
    assert calculator.remaining(year.start_date).school_days_remaining == counted - 1


@pytest.fixture
def calculator(school_config):
    classifier = DayClassifier(school_config.calendar_range, school_config.non_attendance)
    return RemainingTimeCalculator(school_config.calendar_range, classifier.non_attendance)


def test_next_non_attendance_single_day(calculator):
    run = calculator.next_non_attendance(date(2025, 8, 20))
    assert run.label == "Labor Day"
    assert run.start_date == run.end_date == date(2025, 9, 1)
    assert not run.is_today


def test_next_non_attendance_groups_consecutive_days(calculator):
    run = calculator.next_non_attendance(date(2025, 11, 20))
    assert run.label == "Thanksgiving Break"
    assert run.start_date == date(2025, 11, 26)
    assert run.end_date == date(2025, 11, 28)


def test_next_non_attendance_today(calculator):
    run = calculator.next_non_attendance(date(2025, 12, 22))
    assert run.label == "Winter Break"
    assert run.end_date == date(2026, 1, 2)
    assert run.is_today


def test_next_non_attendance_before_the_year_starts(calculator):
    run = calculator.next_non_attendance(date(2025, 7, 1))
    assert run.start_date == date(2025, 9, 1)


def test_no_more_breaks(calculator):
    assert calculator.next_non_attendance(date(2026, 4, 10)) is None


def test_adjacent_entries_with_different_labels_are_separate():
    year = CalendarRange(date(2025, 12, 1), date(2025, 12, 31))
    calculator = RemainingTimeCalculator(year, DayClassifier(year, [
        NonAttendanceEntry("Institute Day", date(2025, 12, 19), date(2025, 12, 19)),
        NonAttendanceEntry("Winter Break", date(2025, 12, 20), date(2025, 12, 31)),
    ]).non_attendance)
    run = calculator.next_non_attendance(date(2025, 12, 1))
    assert run.label == "Institute Day"
    assert run.end_date == date(2025, 12, 19)


def test_calculator_counts_the_year_once(monkeypatch):
    """Repeated countdowns reuse the cached total instead of recounting the year."""
    full_counts = []
    original = remaining_module.count_school_days

    def counting(calendar_range, non_attendance, after=None):
        if after is None:
            full_counts.append(1)
        return original(calendar_range, non_attendance, after)

    monkeypatch.setattr(remaining_module, "count_school_days", counting)
    calculator = RemainingTimeCalculator(SHORT_YEAR, SHORT_MAP)
    for day in (date(2025, 9, 2), date(2025, 9, 5), date(2025, 9, 10)):
        assert calculator.remaining(day).total_school_days == 9
    assert len(full_counts) == 1
