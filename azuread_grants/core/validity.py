"""Validity window defaults for permission grants."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Callable, Optional

from .validators import parse_timestamp

DEFAULT_VALIDITY_YEARS = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_calendar_years(moment: datetime, years: int) -> datetime:
    """Shift a datetime by whole calendar years.

    29 February lands on 28 February when the target year is not a leap
    year. Time of day and tzinfo are preserved.
    """
    target_year = moment.year + years
    try:
        return moment.replace(year=target_year)
    except ValueError:
        return moment.replace(year=target_year, day=28)


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as ISO-8601, using ``Z`` for UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def resolve_validity_window(
    start_time: Optional[str],
    expiry_time: Optional[str],
    clock: Callable[[], datetime] = utcnow,
    years: int = DEFAULT_VALIDITY_YEARS,
) -> tuple[str, str]:
    """Resolve the effective (start_time, expiry_time) pair.

    Provided values pass through verbatim. A missing start is the clock's
    current time; a missing expiry is the effective start plus ``years``
    calendar years.
    """
    if start_time:
        start = start_time
        start_moment = parse_timestamp(start_time)
    else:
        start_moment = clock()
        start = format_timestamp(start_moment)

    if expiry_time:
        expiry = expiry_time
    else:
        expiry = format_timestamp(add_calendar_years(start_moment, years))
    return start, expiry
