"""
iCalendar generation module.

Generates standards-compliant .ics files with the school's days off and,
optionally, every bell period of every school day.
"""

import uuid
from datetime import date, timedelta
from typing import Optional

from icalendar import Calendar, Event

from .calendar_service import SchoolCalendar
from .day_classifier import date_range
from .models import CalendarEvent, NonAttendanceEntry, ResolvedSchedule


class ICalendarGenerator:
    """Generates iCalendar (.ics) files from a school calendar."""

    def __init__(self, school: SchoolCalendar):
        """Initialize calendar generator.

        Args:
            school: School calendar to export
        """
        self.school = school

    def generate_calendar(self,
                          include_periods: bool = False,
                          start: Optional[date] = None,
                          end: Optional[date] = None) -> Calendar:
        """Generate a calendar with days off, events and (optionally) periods.

        Args:
            include_periods: Add one timed event per counted bell period
            start: First day of period events (default: first day of school)
            end: Last day of period events (default: last day of school)

        Returns:
            Calendar object ready for export
        """
        cal = Calendar()
        cal.add('prodid', '-//School Days and Periods//EN')
        cal.add('version', '2.0')
        cal.add('calscale', 'GREGORIAN')
        cal.add('method', 'PUBLISH')
        cal.add('x-wr-calname', self.school.config.name)
        cal.add('x-wr-timezone', self.school.config.timezone)

        for entry in self.school.config.non_attendance:
            cal.add_component(self._create_non_attendance_event(entry))

        for item in self.school.config.events:
            cal.add_component(self._create_info_event(item))

        if include_periods:
            calendar_range = self.school.config.calendar_range
            start = start or calendar_range.start_date
            end = end or calendar_range.end_date
            for day in date_range(start, end):
                if not self.school.classify_day(day).is_school_day:
                    continue
                for event in self._create_period_events(self.school.resolve_schedule(day)):
                    cal.add_component(event)

        return cal

    def _create_non_attendance_event(self, entry: NonAttendanceEntry) -> Event:
        """Create an all-day event spanning a holiday or break."""
        event = Event()
        event.add('uid', f"{uuid.uuid4()}@schoolcal")
        event.add('dtstart', entry.start_date)
        # DTEND is exclusive for all-day events
        event.add('dtend', entry.end_date + timedelta(days=1))
        event.add('summary', f"No school: {entry.label}")
        event.add('transp', 'TRANSPARENT')
        return event

    def _create_info_event(self, item: CalendarEvent) -> Event:
        event = Event()
        event.add('uid', f"{uuid.uuid4()}@schoolcal")
        event.add('dtstart', item.start_date)
        event.add('dtend', item.end_date + timedelta(days=1))
        if item.kind == "early_release":
            summary = f"Early release: {item.title}"
        else:
            summary = item.title
        event.add('summary', summary)
        if item.note:
            event.add('description', item.note)
        event.add('transp', 'TRANSPARENT')
        return event

    def _create_period_events(self, schedule: ResolvedSchedule) -> list:
        """Create one timed event per counted period of a resolved day."""
        events = []
        for period in schedule.periods:
            if not period.counts_toward_remaining:
                continue
            event = Event()
            event.add('uid', f"{uuid.uuid4()}@schoolcal")
            event.add('dtstart', period.start)
            event.add('dtend', period.end)
            event.add('summary', period.label)
            event.add('description', f"{schedule.name} schedule")
            events.append(event)
        return events

    def export_to_file(self, calendar: Calendar, filepath: str):
        """Export calendar to .ics file.

        Args:
            calendar: Calendar object
            filepath: Path to output file
        """
        with open(filepath, 'wb') as f:
            f.write(calendar.to_ical())
