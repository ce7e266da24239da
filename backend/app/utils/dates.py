import calendar
from datetime import date, datetime, timedelta
from typing import Any, Iterator, Optional, Tuple

import pandas as pd


def parse_date(value: Any) -> Optional[date]:
    """Coerce a loosely typed date value, returning None when it is unusable."""
    if value is None or value is pd.NaT or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        dt = pd.to_datetime(value, errors="coerce")
        if pd.isna(dt):
            return None
        return dt.date()
    except (TypeError, ValueError, OverflowError):
        return None


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(value: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=1), value.replace(day=last_day)


def parse_month(month: str) -> Tuple[date, date]:
    """'YYYY-MM' -> (first day, last day)."""
    try:
        year, month_num = (int(part) for part in month.split("-"))
        first = date(year, month_num, 1)
    except (TypeError, ValueError):
        raise ValueError("Invalid month format. Use YYYY-MM")
    return month_bounds(first)
