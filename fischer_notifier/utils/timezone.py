"""Timezone conversion and exam date utilities"""
import re
from datetime import date, datetime
from typing import Optional
import pytz

DEFAULT_TIMEZONE = "Europe/Berlin"

_TERMIN_PATTERN = re.compile(r"^\s*(\d{1,2})\.(\d{1,2})\.(\d{4})\s*$")


def now_utc() -> datetime:
    """Get current UTC time as naive datetime"""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def format_termin(value: str, tz: str = DEFAULT_TIMEZONE) -> str:
    """
    Format an API date string as a German exam date (dd.mm.yyyy).

    Timestamps are converted to the given timezone before the date is taken,
    so '2023-06-14T22:30:00Z' becomes '15.06.2023' in Europe/Berlin.
    Naive timestamps are read as local time in that timezone and a bare
    date ('2023-06-15') is used as is.

    Raises:
        ValueError: if the value is not an ISO-8601 date or timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid exam date: {value!r}")

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text).strftime("%d.%m.%Y")

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)

    tz_obj = pytz.timezone(tz)
    if dt.tzinfo is None:
        dt = tz_obj.localize(dt)
    return dt.astimezone(tz_obj).strftime("%d.%m.%Y")


def parse_termin(termin: Optional[str]) -> Optional[date]:
    """Parse a dd.mm.yyyy exam date, returning None when malformed"""
    if not isinstance(termin, str):
        return None
    match = _TERMIN_PATTERN.match(termin)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None
