"""
Month-over-month category growth and a first-difference linear forecast.

The forecast is deliberately simple: the next value is the last observed total
plus the mean of consecutive differences. It is not a regression, has no notion
of seasonality, and reacts strongly to the last observation and to recent
volatility. Fewer than two observations yield 0 with ``sufficient_data`` false.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from budget_insights.core.errors import InvalidRecordError
from budget_insights.utils.aggregator import Aggregator, Bucket, Granularity, TransactionLike
from budget_insights.utils.periods import (
    MonthLike,
    add_months,
    month_bounds,
    month_key,
    month_label,
    parse_month,
)

SeriesPoint = Union[float, int, Tuple[str, float], Bucket]


@dataclass
class Forecast:
    predicted_total: float
    average_delta: float
    sufficient_data: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForecastPoint:
    month: str
    label: str
    actual: Optional[float] = None
    predicted: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForecastWindow:
    points: List[ForecastPoint]
    forecast: Forecast

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points": [point.to_dict() for point in self.points],
            "forecast": self.forecast.to_dict(),
            "sufficient_data": self.forecast.sufficient_data,
        }


@dataclass
class CategoryGrowth:
    category: str
    month: str
    label: str
    growth: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _category_total(
    transactions: Sequence[TransactionLike],
    category: str,
    year: int,
    month: int,
    tz: tzinfo,
) -> float:
    start, end = month_bounds(year, month, tz)
    return sum(
        tx.amount
        for tx in transactions
        if tx.category == category and start <= tx.occurred_at < end
    )


def growth_rate(previous_total: float, current_total: float) -> float:
    # no baseline: any spend counts as 100% growth, none as 0%
    if previous_total == 0:
        return 100.0 if current_total > 0 else 0.0
    return (current_total - previous_total) / previous_total * 100


def growth(
    expenses: Iterable[TransactionLike],
    category: str,
    current_month: MonthLike,
    tz: Optional[tzinfo] = None,
) -> float:
    """Percent change of ``category`` spend from the previous calendar month."""
    tz = tz or timezone.utc
    accepted = Aggregator.ingest(expenses)
    year, month = parse_month(current_month, tz)
    prev_year, prev_month = add_months(year, month, -1)
    current_total = _category_total(accepted, category, year, month, tz)
    previous_total = _category_total(accepted, category, prev_year, prev_month, tz)
    return growth_rate(previous_total, current_total)


def _series_values(series: Iterable[SeriesPoint]) -> List[float]:
    values = []
    for point in series:
        if isinstance(point, Bucket):
            values.append(float(point.total))
        elif isinstance(point, (tuple, list)):
            values.append(float(point[1]))
        else:
            values.append(float(point))
    return values


def forecast(monthly_series: Iterable[SeriesPoint]) -> Forecast:
    values = _series_values(monthly_series)
    if len(values) < 2:
        return Forecast(predicted_total=0.0, average_delta=0.0, sufficient_data=False)
    deltas = [current - previous for previous, current in zip(values, values[1:])]
    average_delta = sum(deltas) / len(deltas)
    return Forecast(
        predicted_total=values[-1] + average_delta,
        average_delta=average_delta,
        sufficient_data=True,
    )


def forecast_next(monthly_series: Iterable[SeriesPoint]) -> float:
    """One-step-ahead prediction; 0 means insufficient data."""
    return forecast(monthly_series).predicted_total


def forecast_window(
    expenses: Iterable[TransactionLike],
    reference_date: Union[date, datetime],
    history: int = 3,
    horizon: int = 2,
    tz: Optional[tzinfo] = None,
) -> ForecastWindow:
    """
    ``history`` completed months before the reference month as actuals, then
    ``horizon`` predicted months starting with the reference month itself.
    Every predicted month carries the same one-step-ahead value.

    Fewer than two completed months with any spend count as insufficient
    data: the prediction is 0 and ``sufficient_data`` is false.
    """
    if history < 1 or horizon < 0:
        raise InvalidRecordError(f"Invalid forecast window: history={history}, horizon={horizon}")
    aggregator = Aggregator(tz=tz)
    ref_year, ref_month = parse_month(reference_date, aggregator.tz)
    last_year, last_month = add_months(ref_year, ref_month, -1)
    actual = aggregator.bucket(expenses, Granularity.MONTH, date(last_year, last_month, 1), history)

    if sum(1 for item in actual if item.total > 0) >= 2:
        result = forecast(actual)
    else:
        result = Forecast(predicted_total=0.0, average_delta=0.0, sufficient_data=False)

    points = []
    for item in actual:
        year, month = parse_month(item.label)
        points.append(ForecastPoint(month=item.label, label=month_label(year, month), actual=item.total))

    for step in range(horizon):
        year, month = add_months(ref_year, ref_month, step)
        points.append(ForecastPoint(
            month=month_key(year, month),
            label=month_label(year, month),
            predicted=round(result.predicted_total, 2),
        ))
    return ForecastWindow(points=points, forecast=result)


def category_growth_series(
    expenses: Iterable[TransactionLike],
    reference_date: Union[date, datetime],
    months: int = 1,
    tz: Optional[tzinfo] = None,
) -> List[CategoryGrowth]:
    """Growth per category for the last ``months`` months, oldest month first."""
    if months < 1:
        raise InvalidRecordError(f"months must be positive, got {months}")
    tz = tz or timezone.utc
    accepted = Aggregator.ingest(expenses)
    ref_year, ref_month = parse_month(reference_date, tz)

    result = []
    for category in sorted({tx.category for tx in accepted}):
        for offset in range(months - 1, -1, -1):
            year, month = add_months(ref_year, ref_month, -offset)
            result.append(CategoryGrowth(
                category=category,
                month=month_key(year, month),
                label=month_label(year, month),
                growth=growth(accepted, category, month_key(year, month), tz),
            ))
    return result
