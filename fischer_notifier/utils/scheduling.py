"""Schedule calculation for the daily check and weekly maintenance ticks"""
from datetime import datetime, time, timedelta
from typing import Optional, Tuple
import pytz

from .timezone import DEFAULT_TIMEZONE


def parse_clock(value: str) -> Tuple[int, int]:
    """
    Parse an 'HH:MM' clock time

    Raises:
        ValueError: if the value is not a valid 24h clock time
    """
    try:
        hours, minutes = value.strip().split(":")
        parsed = time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid clock time {value!r}, expected HH:MM") from e
    return parsed.hour, parsed.minute


def next_run_time(
    now: datetime,
    at: str,
    weekday: Optional[int] = None,
    tz_name: str = DEFAULT_TIMEZONE
) -> datetime:
    """
    Get the next local occurrence of a clock time

    Args:
        now: Current time (naive values are read as UTC)
        at: Clock time 'HH:MM' in the given timezone
        weekday: Optional weekday (Monday=0 ... Sunday=6) for weekly runs
        tz_name: Timezone the clock time refers to

    Returns:
        Timezone-aware datetime strictly after now
    """
    hour, minute = parse_clock(at)
    tz = pytz.timezone(tz_name)

    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    local_now = now.astimezone(tz)

    day = local_now.date()
    if weekday is not None:
        day += timedelta(days=(weekday - day.weekday()) % 7)

    step = timedelta(days=7 if weekday is not None else 1)
    while True:
        # Localize per candidate day so DST changes keep the wall clock time
        candidate = tz.localize(datetime.combine(day, time(hour, minute)))
        if candidate > local_now:
            return candidate
        day += step


def seconds_until(target: datetime, now: Optional[datetime] = None) -> float:
    """Seconds from now until target, never negative"""
    if now is None:
        now = datetime.now(pytz.UTC)
    return max(0.0, (target - now).total_seconds())
