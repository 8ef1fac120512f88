"""
Cycle clock: maps wall-clock time onto fixed, calendar-aligned buckets.

The cycle id doubles as the idempotency key of the ledger, so the mapping has
to be pure: the same instant always yields the same window.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from errors import ConfigurationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def epoch_ms(moment: datetime) -> int:
    return (as_utc(moment) - EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True)
class CycleWindow:
    cycle_id: int
    start: datetime
    end: datetime

    @property
    def interval_seconds(self) -> int:
        return int((self.end - self.start).total_seconds())

    def contains(self, now: datetime) -> bool:
        return self.start <= as_utc(now) < self.end

    def seconds_until_next(self, now: datetime) -> int:
        remaining = (self.end - as_utc(now)) // timedelta(seconds=1)
        return max(0, remaining)

    def to_dict(self, now: datetime) -> dict:
        now = as_utc(now)
        return {
            "cycle_id": self.cycle_id,
            "interval_seconds": self.interval_seconds,
            "window_start": self.start.isoformat(),
            "window_end": self.end.isoformat(),
            "seconds_until_next": self.seconds_until_next(now),
            "server_time": now.isoformat(),
            "server_time_ms": epoch_ms(now),
        }


class CycleClock:
    """
    Sub-hour intervals must divide 60 minutes and are aligned to the hour
    (marks such as [0, 3, ..., 57] minutes). Longer intervals must be whole
    hours dividing a day and are aligned to UTC midnight ([0, 4, ..., 20] hours).
    """

    def __init__(self, interval_minutes: int):
        interval_minutes = int(interval_minutes)
        if interval_minutes <= 0:
            raise ConfigurationError(f"Cycle interval must be positive, got {interval_minutes}")

        if interval_minutes <= MINUTES_PER_HOUR:
            if MINUTES_PER_HOUR % interval_minutes:
                raise ConfigurationError(f"{interval_minutes} minutes does not divide an hour")
            self.sub_hour = True
            self.marks = list(range(0, MINUTES_PER_HOUR, interval_minutes))
        else:
            hours, rest = divmod(interval_minutes, MINUTES_PER_HOUR)
            if rest or HOURS_PER_DAY % hours:
                raise ConfigurationError(f"{interval_minutes} minutes is not a whole number of hours dividing a day")
            self.sub_hour = False
            self.marks = list(range(0, HOURS_PER_DAY, hours))

        self.interval_minutes = interval_minutes
        self.interval_ms = interval_minutes * 60_000

    def window(self, now: datetime) -> CycleWindow:
        now = as_utc(now)
        if self.sub_hour:
            anchor = now.replace(minute=0, second=0, microsecond=0)
            position, unit, span = now.minute, timedelta(minutes=1), timedelta(hours=1)
        else:
            anchor = now.replace(hour=0, minute=0, second=0, microsecond=0)
            position, unit, span = now.hour, timedelta(hours=1), timedelta(days=1)

        mark = max(m for m in self.marks if m <= position)
        start = anchor + mark * unit

        later = [m for m in self.marks if m > mark]
        if later:
            end = anchor + later[0] * unit
        else:
            # wrap to the first mark of the next hour/day
            end = anchor + span + self.marks[0] * unit

        return CycleWindow(cycle_id=epoch_ms(start) // self.interval_ms, start=start, end=end)

    def cycle_id(self, now: datetime) -> int:
        return self.window(now).cycle_id
