"""Time and billing-period utilities"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Tuple


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def validate_period(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not 1000 <= year <= 9999:
        raise ValueError(f"year must have four digits, got {year}")


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of a month, both inclusive"""
    validate_period(month, year)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_datetime_range(month: int, year: int) -> Tuple[datetime, datetime]:
    """
    Half-open instant range [first day 00:00, first day of next month 00:00).

    Covers every instant of the last day, which a closed range ending at
    the last day's midnight would drop.
    """
    first, last = month_bounds(month, year)
    start = datetime.combine(first, datetime.min.time())
    end = datetime.combine(last + timedelta(days=1), datetime.min.time())
    return start, end


def period_key(month: int, year: int) -> str:
    """Compact period label used in document numbers, e.g. 202406"""
    validate_period(month, year)
    return f"{year}{month:02d}"


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes become naive UTC; naive ones are taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
