"""fitcal: recurring workout schedules, calendars and template generation."""

__version__ = "0.1.0"
