"""
Clock -- injectable source of the current time and business date.

Engines never call ``datetime.now()`` or ``date.today()``.  The default
``as_of`` for number allocation, payment dates and posting timestamps all
come from the Clock handed to the service.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone


class Clock(ABC):
    """``now()`` is timezone-aware UTC; ``today()`` is its calendar date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a business date (noon UTC, 2026-01-15 by default).

    Time only moves through ``advance`` or ``set_date``.
    """

    def __init__(self, business_date: date = date(2026, 1, 15)):
        self._now = datetime.combine(business_date, time(12), tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set_date(self, business_date: date) -> None:
        self._now = datetime.combine(business_date, time(12), tzinfo=timezone.utc)

    def advance(self, days: int = 0, seconds: int = 0) -> datetime:
        self._now += timedelta(days=days, seconds=seconds)
        return self._now
