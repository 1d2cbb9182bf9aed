"""School days & periods: day status, bell schedules and countdowns."""

from .calendar_service import SchoolCalendar
from .config import ConfigError, SchoolConfig, load_school_config, parse_school_config

__version__ = "0.1.0"

__all__ = [
    "SchoolCalendar",
    "SchoolConfig",
    "ConfigError",
    "load_school_config",
    "parse_school_config",
]
