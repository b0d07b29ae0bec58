import unittest
from datetime import datetime, timedelta

from exceptions import TimeRangeError
from tariff import (
    TimeRange,
    default_high_tariff_schedule,
    is_high_tariff,
    next_low_tariff_period,
    parse_time_range,
)

# 2025-01-13 is a Monday
MONDAY = datetime(2025, 1, 13)
SATURDAY = datetime(2025, 1, 11)
SUNDAY = datetime(2025, 1, 12)
FRIDAY = datetime(2025, 1, 17)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


class TestParseTimeRange(unittest.TestCase):
    def test_basic_time_range(self):
        tr = parse_time_range("7:00-20:00")
        self.assertEqual((tr.start_hour, tr.start_minute, tr.end_hour, tr.end_minute), (7, 0, 20, 0))
        self.assertEqual(tr.weekdays, frozenset())

    def test_time_range_with_weekdays(self):
        tr = parse_time_range("7:00-20:00:Mon,Tue,Wed,Thu,Fri")
        self.assertEqual(tr.weekdays, frozenset({0, 1, 2, 3, 4}))

    def test_time_range_with_minutes_and_full_day_names(self):
        tr = parse_time_range("07:30-19:45:monday, Friday")
        self.assertEqual((tr.start_hour, tr.start_minute, tr.end_hour, tr.end_minute), (7, 30, 19, 45))
        self.assertEqual(tr.weekdays, frozenset({0, 4}))

    def test_invalid_inputs(self):
        for text in ("invalid", "7:00-20:00:InvalidDay", "7-20", "7:00/20:00", "25:00-20:00", "7:60-8:00", "a:00-8:00"):
            with self.subTest(text=text):
                with self.assertRaises(TimeRangeError):
                    parse_time_range(text)

    def test_str_round_trips_through_parser(self):
        tr = parse_time_range("22:00-6:00:Sat,Sun")
        self.assertEqual(str(tr), "22:00-06:00:Sat,Sun")
        self.assertEqual(parse_time_range(str(tr)), tr)


class TestDefaultSchedule(unittest.TestCase):
    def test_default_high_tariff_schedule(self):
        schedule = default_high_tariff_schedule()
        self.assertEqual(len(schedule), 1)
        self.assertEqual(schedule[0], TimeRange(7, 0, 20, 0, frozenset({0, 1, 2, 3, 4})))

    def test_default_schedule_scenario(self):
        schedule = default_high_tariff_schedule()
        cases = [
            (at(MONDAY, 6, 59), False),
            (at(MONDAY, 7, 0), True),
            (at(MONDAY, 9, 0), True),
            (at(MONDAY, 19, 59), True),
            (at(MONDAY, 20, 0), False),
            (at(MONDAY, 0, 0), False),
            (at(SATURDAY, 9, 0), False),
            (at(SUNDAY, 9, 0), False),
            (at(FRIDAY, 19, 59), True),
        ]
        for moment, expected in cases:
            with self.subTest(moment=moment):
                self.assertEqual(is_high_tariff(moment, schedule), expected)


class TestTimeRangeContains(unittest.TestCase):
    def test_end_is_exclusive(self):
        tr = TimeRange(9, 0, 17, 30)
        self.assertFalse(tr.contains(at(MONDAY, 8, 59)))
        self.assertTrue(tr.contains(at(MONDAY, 9, 0)))
        self.assertTrue(tr.contains(at(MONDAY, 17, 29)))
        self.assertFalse(tr.contains(at(MONDAY, 17, 30)))

    def test_midnight_crossing_range(self):
        tr = TimeRange(22, 0, 6, 0)
        self.assertTrue(tr.crosses_midnight)
        self.assertTrue(tr.contains(at(MONDAY, 22, 0)))
        self.assertTrue(tr.contains(at(MONDAY, 23, 59)))
        self.assertTrue(tr.contains(at(MONDAY, 0, 0)))
        self.assertTrue(tr.contains(at(MONDAY, 5, 59)))
        self.assertFalse(tr.contains(at(MONDAY, 6, 0)))
        self.assertFalse(tr.contains(at(MONDAY, 21, 59)))
        self.assertFalse(tr.contains(at(MONDAY, 12, 0)))

    def test_weekday_and_time_must_both_hold(self):
        tr = TimeRange(8, 0, 12, 0, frozenset({5}))
        self.assertTrue(tr.contains(at(SATURDAY, 9, 0)))
        self.assertFalse(tr.contains(at(SATURDAY, 13, 0)))
        self.assertFalse(tr.contains(at(SUNDAY, 9, 0)))

    def test_no_weekdays_matches_every_day(self):
        tr = TimeRange(8, 0, 12, 0)
        for offset in range(7):
            with self.subTest(offset=offset):
                self.assertTrue(tr.contains(at(MONDAY + timedelta(days=offset), 9, 0)))

    def test_ranges_are_or_combined(self):
        day_and_night = [TimeRange(6, 0, 22, 0), TimeRange(22, 0, 6, 0)]
        moment = MONDAY
        for _ in range(24 * 60):
            self.assertTrue(is_high_tariff(moment, day_and_night))
            moment += timedelta(minutes=1)


class TestNextLowTariffPeriod(unittest.TestCase):
    def test_returns_now_during_low_tariff(self):
        now = MONDAY.replace(hour=21, minute=15, second=42)
        self.assertEqual(next_low_tariff_period(now, default_high_tariff_schedule()), now)

    def test_finds_end_of_high_tariff(self):
        now = MONDAY.replace(hour=9, minute=30, second=12)
        self.assertEqual(next_low_tariff_period(now, default_high_tariff_schedule()), at(MONDAY, 20, 0))

    def test_midnight_crossing_window(self):
        now = at(MONDAY, 23, 0)
        expected = at(MONDAY + timedelta(days=1), 6, 0)
        self.assertEqual(next_low_tariff_period(now, [TimeRange(22, 0, 6, 0)]), expected)

    def test_falls_back_to_one_day_later(self):
        now = at(MONDAY, 10, 0)
        always_high = [TimeRange(0, 0, 12, 0), TimeRange(12, 0, 0, 0)]
        self.assertEqual(next_low_tariff_period(now, always_high), now + timedelta(hours=24))


if __name__ == "__main__":
    unittest.main()
