"""
Datetime utilities

All timestamps are stored as naive UTC values in ``DateTime`` columns.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as a naive datetime (matches the database columns)

    Example:
        >>> now = utc_now()
        >>> now.tzinfo is None
        True
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(moment: datetime) -> datetime:
    """First instant of the calendar month containing ``moment``"""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)

