"""Clock: store calendar day and controlled time."""

from datetime import date, datetime, timedelta, timezone

from inventory_kernel.domain.clock import DeterministicClock, SystemClock

GULF = timezone(timedelta(hours=4))


def test_default_time():
    clock = DeterministicClock()
    assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert clock.today() == date(2024, 1, 1)


def test_today_uses_business_timezone():
    late = datetime(2024, 1, 31, 22, 30, tzinfo=timezone.utc)
    assert DeterministicClock(late).today() == date(2024, 1, 31)
    assert DeterministicClock(late, business_timezone=GULF).today() == date(2024, 2, 1)


def test_advance_and_set_time():
    clock = DeterministicClock()
    clock.advance(90)
    clock.advance_days(2)
    assert clock.now() == datetime(2024, 1, 3, 12, 1, 30, tzinfo=timezone.utc)

    clock.set_time(datetime(2025, 6, 1, tzinfo=timezone.utc))
    assert clock.today() == date(2025, 6, 1)


def test_system_clock_is_aware():
    clock = SystemClock(business_timezone=GULF)
    assert clock.now().tzinfo is not None
    assert clock.business_timezone is GULF
