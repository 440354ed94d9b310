"""Calendar-day boundaries in the configured day timezone.

Session recording and the nightly sweep both derive "today" from here so the
two always agree on which day a session belongs to.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo


@lru_cache(maxsize=32)
def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA zone name. Raises ZoneInfoNotFoundError for unknown names."""
    return ZoneInfo(tz_name)


def local_day(moment: datetime, tz_name: str) -> date:
    """Calendar date of ``moment`` in ``tz_name``. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(get_zone(tz_name)).date()


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Today's calendar date in ``tz_name``."""
    if now is None:
        now = datetime.now(timezone.utc)
    return local_day(now, tz_name)


def previous_day(day: date) -> date:
    """The calendar day before ``day``."""
    return day - timedelta(days=1)


def day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """UTC [start, end) instants of a local calendar day."""
    zone = get_zone(tz_name)
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
