from datetime import date, datetime, timedelta
from typing import Union

from pto_service.core.results import ErrorKind, Result

DateLike = Union[date, str]

WEEKEND = (5, 6)  # date.weekday(): Saturday, Sunday


def parse_date(value: DateLike) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string; raise ValueError otherwise."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise ValueError(f"Unsupported date value: {value!r}")


def count_business_days(start: DateLike, end: DateLike) -> Result[int]:
    """
    Count weekdays (Mon-Fri) in the inclusive range [start, end].

    No holiday calendar is applied. Ranges are human-scale, so the days are
    simply walked one by one.
    """
    try:
        start_day = parse_date(start)
        end_day = parse_date(end)
    except (TypeError, ValueError):
        return Result.failure(
            ErrorKind.INVALID_DATE_RANGE,
            "Invalid dates",
            start_date=str(start),
            end_date=str(end),
        )

    if end_day < start_day:
        return Result.failure(
            ErrorKind.INVALID_DATE_RANGE,
            "End date is before start date",
            start_date=start_day.isoformat(),
            end_date=end_day.isoformat(),
        )

    count = 0
    day = start_day
    while day <= end_day:
        if day.weekday() not in WEEKEND:
            count += 1
        day += timedelta(days=1)
    return Result.success(count)
