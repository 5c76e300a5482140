"""
Calendar arithmetic used by the aggregator, the growth calculator and the
record adapter. All interval helpers return half-open ``[start, end)`` pairs of
timezone-aware datetimes in the requested zone.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple, Union

from budget_insights.core.errors import InvalidRecordError

MonthLike = Union[str, date, datetime]


def to_local(moment: datetime, tz: Optional[tzinfo]) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz or timezone.utc)


def local_date(value: Union[date, datetime], tz: Optional[tzinfo]) -> date:
    if isinstance(value, datetime):
        return to_local(value, tz).date()
    return value


def start_of_day(day: date, tz: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time(), tzinfo=tz or timezone.utc)


def day_bounds(day: Union[date, datetime], tz: Optional[tzinfo]) -> Tuple[datetime, datetime]:
    d = local_date(day, tz)
    return start_of_day(d, tz), start_of_day(d + timedelta(days=1), tz)


def week_start(day: date, first_weekday: int) -> date:
    return day - timedelta(days=(day.weekday() - first_weekday) % 7)


def add_months(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_month(value: MonthLike, tz: Optional[tzinfo] = None) -> Tuple[int, int]:
    """Accepts ``"YYYY-MM"``, a date or a datetime (evaluated in ``tz``)."""
    if isinstance(value, str):
        try:
            year_str, month_str = value.split("-")
            year, month = int(year_str), int(month_str)
        except ValueError as e:
            raise InvalidRecordError(f"Month must follow YYYY-MM format, got {value!r}") from e
        if not 1 <= month <= 12:
            raise InvalidRecordError(f"Month out of range: {value!r}")
        return year, month
    d = local_date(value, tz)
    return d.year, d.month


def month_bounds(year: int, month: int, tz: Optional[tzinfo]) -> Tuple[datetime, datetime]:
    next_year, next_month = add_months(year, month, 1)
    return (
        start_of_day(date(year, month, 1), tz),
        start_of_day(date(next_year, next_month, 1), tz),
    )


def month_label(year: int, month: int) -> str:
    """Abbreviated month name, e.g. ``Feb``."""
    return date(year, month, 1).strftime("%b")
