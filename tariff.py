"""High tariff windows and the matching rules used to decide when to charge.

A window is a recurring time-of-day range, optionally restricted to some
weekdays. Start is inclusive, end is exclusive, and a range whose end is
before its start wraps around midnight.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, List

from exceptions import TimeRangeError

MINUTES_PER_DAY = 24 * 60

WEEKDAY_NAMES = {
    "mon": 0,
    "monday": 0,
    "tue": 1,
    "tuesday": 1,
    "wed": 2,
    "wednesday": 2,
    "thu": 3,
    "thursday": 3,
    "fri": 4,
    "friday": 4,
    "sat": 5,
    "saturday": 5,
    "sun": 6,
    "sunday": 6,
}
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WORKING_DAYS = frozenset(range(5))


@dataclass(frozen=True)
class TimeRange:
    """A recurring high tariff window.

    ``weekdays`` holds ``datetime.weekday()`` numbers (Monday is 0); an empty
    set means the window applies every day.
    """

    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    weekdays: FrozenSet[int] = frozenset()

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute

    @property
    def crosses_midnight(self) -> bool:
        return self.end_minutes < self.start_minutes

    def contains(self, moment: datetime) -> bool:
        if self.weekdays and moment.weekday() not in self.weekdays:
            return False

        current = moment.hour * 60 + moment.minute
        if self.crosses_midnight:
            return current >= self.start_minutes or current < self.end_minutes
        return self.start_minutes <= current < self.end_minutes

    def __str__(self) -> str:
        text = f"{self.start_hour:02d}:{self.start_minute:02d}-{self.end_hour:02d}:{self.end_minute:02d}"
        if self.weekdays:
            text += ":" + ",".join(WEEKDAY_LABELS[day] for day in sorted(self.weekdays))
        return text


def _parse_clock(text: str, label: str) -> tuple:
    parts = text.strip().split(":")
    if len(parts) != 2:
        raise TimeRangeError(f"invalid {label} time format: {text}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        raise TimeRangeError(f"invalid {label} time: {text}")
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise TimeRangeError(f"{label} time out of range: {text}")
    return hour, minute


def parse_time_range(text: str) -> TimeRange:
    """Parse ``"7:00-20:00"`` or ``"7:00-20:00:Mon,Tue,Wed,Thu,Fri"``."""
    colon_parts = text.strip().split(":")
    if len(colon_parts) >= 4:
        time_part = ":".join(colon_parts[:-1])
        weekdays_part = colon_parts[-1]
    elif len(colon_parts) == 3:
        time_part = text.strip()
        weekdays_part = ""
    else:
        raise TimeRangeError(f"invalid time range format: {text}")

    bounds = time_part.split("-")
    if len(bounds) != 2:
        raise TimeRangeError(f"invalid time range format: {time_part}")
    start_hour, start_minute = _parse_clock(bounds[0], "start")
    end_hour, end_minute = _parse_clock(bounds[1], "end")

    weekdays = set()
    for name in filter(None, (n.strip().lower() for n in weekdays_part.split(","))):
        if name not in WEEKDAY_NAMES:
            raise TimeRangeError(f"invalid weekday: {name}")
        weekdays.add(WEEKDAY_NAMES[name])

    return TimeRange(start_hour, start_minute, end_hour, end_minute, frozenset(weekdays))


def parse_time_ranges(values: Iterable[str]) -> List[TimeRange]:
    return [parse_time_range(value) for value in values]


def default_high_tariff_schedule() -> List[TimeRange]:
    """EKZ high tariff: Monday to Friday, 07:00-20:00."""
    return [TimeRange(7, 0, 20, 0, WORKING_DAYS)]


def is_high_tariff(moment: datetime, ranges: Iterable[TimeRange]) -> bool:
    return any(time_range.contains(moment) for time_range in ranges)


def next_low_tariff_period(moment: datetime, ranges: Iterable[TimeRange]) -> datetime:
    """Return the first instant at or after ``moment`` that is low tariff.

    Scans forward one minute at a time over at most a day, so the cost is
    bounded by ``len(ranges) * 1440`` checks. If every minute of the coming
    day is high tariff, ``moment + 24h`` is returned.
    """
    ranges = list(ranges)
    if not is_high_tariff(moment, ranges):
        return moment

    minute_start = moment.replace(second=0, microsecond=0)
    for step in range(1, MINUTES_PER_DAY + 1):
        candidate = minute_start + timedelta(minutes=step)
        if not is_high_tariff(candidate, ranges):
            return candidate

    logging.warning("No low tariff period found in the next 24 hours")
    return moment + timedelta(hours=24)
