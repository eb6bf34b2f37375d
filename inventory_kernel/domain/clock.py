"""
Clock -- injectable time source.

Responsibility:
    Every timestamp the engine records (``occurred_at`` on ledger entries,
    posted/cancelled/approved stamps on documents) and every "today" used
    for batch expiry comes from a Clock passed in at construction.  Nothing
    in the kernel calls ``datetime.now()`` or ``date.today()`` itself.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only implementation that reads
    the wall clock.

Invariants enforced:
    - ``now()`` is always timezone-aware.
    - ``today()`` is the store's calendar day, which can differ from the UTC
      day near midnight; expiry windows are counted in store days.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Time source for services and selectors.

    Contract:
        ``now()`` returns an aware datetime.  ``today()`` returns the date of
        ``now()`` in the clock's business timezone.
    """

    business_timezone: tzinfo = timezone.utc

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(self.business_timezone).date()


class SystemClock(Clock):
    """
    Wall clock.  Timestamps are stored in UTC.

    Args:
        business_timezone: Zone whose calendar day counts as "today" for
            expiry checks, e.g. ``ZoneInfo("Asia/Dubai")``.  Defaults to UTC.
    """

    def __init__(self, business_timezone: tzinfo | None = None):
        if business_timezone is not None:
            self.business_timezone = business_timezone

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock for tests: time only moves when told to.

    Defaults to 2024-01-01 12:00 UTC so generated document numbers carry
    the year 2024.
    """

    def __init__(
        self,
        fixed_time: datetime | None = None,
        business_timezone: tzinfo | None = None,
    ):
        self._fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self._offset = timedelta(0)
        if business_timezone is not None:
            self.business_timezone = business_timezone

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        """Jump to ``time`` and forget earlier advances."""
        self._fixed_time = time
        self._offset = timedelta(0)

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._offset += timedelta(days=days)
