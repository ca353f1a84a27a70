"""
Tests for the clock abstraction.
"""

from datetime import date, datetime, timezone

from stitch_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 1, 1)

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance_days(self):
        clock = DeterministicClock()
        clock.advance_days(20)
        assert clock.today() == date(2024, 1, 21)

    def test_set_date(self):
        clock = DeterministicClock()
        clock.advance(100)
        clock.set_date(date(2024, 3, 15))
        assert clock.now() == datetime(2024, 3, 15, 12, tzinfo=timezone.utc)


class TestSystemClock:
    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
