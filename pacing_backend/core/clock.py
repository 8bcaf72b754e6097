"""
Injectable clock.

The pacing engine and every reconciliation flow take the current date from a
clock object instead of reading wall-clock time, so tests can pin "today".

Usage:
    from pacing_backend.core.clock import get_clock, FixedClock

    today = get_clock().today()

    clock = FixedClock(datetime(2026, 2, 11, 9, 30, tzinfo=timezone.utc))
    summary = await compute_pacing(clock=clock)
"""

from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pacing_backend.core.config import get_settings


class SystemClock:
    """Wall clock in a fixed timezone."""

    def __init__(self, tz_name: str = 'UTC'):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)

    def local_date(self, moment: datetime) -> date:
        """
        Calendar day of a timestamp in this clock's timezone.

        Naive timestamps are taken as UTC, which is what the board API returns.
        """
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()


class FixedClock(SystemClock):
    """Clock frozen at a given instant."""

    def __init__(self, moment: datetime, tz_name: Optional[str] = None):
        if tz_name is None:
            tz_name = 'UTC' if moment.tzinfo is None else str(moment.tzinfo)
        super().__init__(tz_name)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        self._moment = moment.astimezone(self.tz)

    @classmethod
    def on(cls, day: date, tz_name: str = 'UTC') -> 'FixedClock':
        """Clock fixed at noon of the given day."""
        return cls(datetime(day.year, day.month, day.day, 12, 0), tz_name)

    def now(self) -> datetime:
        return self._moment


@lru_cache()
def get_clock() -> SystemClock:
    """Return the process-wide clock in the configured timezone."""
    return SystemClock(get_settings().timezone)
