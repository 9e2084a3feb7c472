"""
Wall-clock helpers. The engine works in naive local time; the user's
timezone is only consulted to read "now".
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

import pytz
from dateutil import rrule

from ...exceptions import InvalidConfigurationError


def local_now(timezone: str = "UTC") -> datetime:
    """Current wall-clock time in the given IANA timezone, without tzinfo."""
    try:
        tz = pytz.timezone(timezone or "UTC")
    except pytz.UnknownTimeZoneError as e:
        raise InvalidConfigurationError(f"Unknown timezone: {timezone}") from e
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def iterate_days(start: datetime, days: int) -> Iterator[datetime]:
    """Midnight of each day in the horizon, starting with the day of `start`."""
    if days < 1:
        return iter(())
    return rrule.rrule(rrule.DAILY, dtstart=start_of_day(start), count=days)


def at_hour(day: datetime, hour: float) -> datetime:
    """Fractional hour on the given day, e.g. 8.5 -> 08:30. 24 means next midnight."""
    return start_of_day(day) + timedelta(minutes=round(hour * 60))


def parse_hhmm(value: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError as e:
        raise InvalidConfigurationError(f"Invalid time '{value}', expected HH:MM") from e


def at_time(day: datetime, value: time) -> datetime:
    return start_of_day(day).replace(hour=value.hour, minute=value.minute)


def ceil_to_grid(moment: datetime, anchor: datetime, minutes: int) -> datetime:
    """Round `moment` up to the next point on a grid of `minutes` anchored at `anchor`."""
    if moment <= anchor:
        return anchor
    step = timedelta(minutes=minutes)
    offset = moment - anchor
    steps = -(-offset // step)
    return anchor + steps * step


def to_datetime(day: Optional[date]) -> Optional[datetime]:
    if day is None or isinstance(day, datetime):
        return day
    return datetime.combine(day, time.min)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)
