from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

EPOCH_DATE = date(1970, 1, 1)


def utc_now_iso(seconds: bool = True) -> str:
    """
    Return current UTC time in ISO-8601 format.
    - If seconds is True, use seconds precision (stable strings).
    - Else, use milliseconds precision.
    """
    if seconds:
        return datetime.now(timezone.utc).isoformat(timespec="seconds")
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def epoch_day(value: Union[datetime, date]) -> int:
    """
    Whole UTC days since 1970-01-01: floor(epoch seconds / 86400).
    Time of day is discarded. A date maps to its own day, so re-truncating
    an already truncated value is a no-op.
    """
    if isinstance(value, datetime):
        return (as_utc(value).date() - EPOCH_DATE).days
    return (value - EPOCH_DATE).days


def date_from_epoch_day(days: int) -> date:
    return EPOCH_DATE + timedelta(days=days)


def truncate_to_date(value: Optional[Union[datetime, date]]) -> Optional[date]:
    if value is None:
        return None
    return date_from_epoch_day(epoch_day(value))
