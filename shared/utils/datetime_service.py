"""
Date/time provider for the round lifecycle.

All deadline comparisons are made against `current`, the present instant in
the configured timezone. Round deadlines are stored as absolute instants, so
comparisons are timezone independent; the timezone only matters when a new
round's deadlines are placed on a weekday and wall-clock time.
"""

import logging
from datetime import datetime, time, timedelta
from typing import Optional

import pytz

logger = logging.getLogger(__name__)

WEEKDAY_PREFIXES = ['mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun']


def get_weekday_index(day_name: str) -> int:
    """
    Map a weekday name to its index (Monday=0 ... Sunday=6).

    Only the first three letters are significant, case-insensitively, so
    'Tuesday', 'tue' and 'TUES' all resolve to 1.

    Raises:
        ValueError: If the name does not start with a weekday prefix
    """
    prefix = (day_name or '')[:3].lower()
    if prefix not in WEEKDAY_PREFIXES:
        raise ValueError(f"Unknown weekday name: {day_name!r}")
    return WEEKDAY_PREFIXES.index(prefix)


class DateTimeService:
    """
    Supplies the current instant and next-week deadline arithmetic.

    Args:
        timezone: IANA timezone name (e.g., 'America/Sao_Paulo')
        now: Optional fixed instant, used by tests and operator replays
    """

    def __init__(self, timezone: str = 'America/Sao_Paulo', now: Optional[datetime] = None):
        self.tz = pytz.timezone(timezone)
        self._fixed_now = now

    @property
    def current(self) -> datetime:
        """Current instant in the configured timezone."""
        if self._fixed_now is not None:
            return self._fixed_now.astimezone(self.tz)
        return datetime.now(self.tz)

    @property
    def utc(self) -> datetime:
        """Current instant in UTC."""
        return self.current.astimezone(pytz.utc)

    def get_day_of_next_week_with_time(self, week_day: str, hour: int, minute: int, second: int) -> datetime:
        """
        Place a wall-clock time on a weekday of next week.

        Next week is the Monday-to-Sunday week containing the instant exactly
        seven days from now. The result is localized in the configured
        timezone, so DST transitions shift the UTC offset but never the
        wall-clock time.

        Args:
            week_day: Weekday name (first three letters significant)
            hour: Hour of day (0-23)
            minute: Minute (0-59)
            second: Second (0-59)

        Returns:
            Timezone-aware datetime with zero microseconds
        """
        target_weekday = get_weekday_index(week_day)
        one_week_ahead = self.current + timedelta(weeks=1)
        target_date = one_week_ahead.date() + timedelta(days=target_weekday - one_week_ahead.weekday())

        naive = datetime.combine(target_date, time(hour, minute, second))
        return self.tz.localize(naive)
