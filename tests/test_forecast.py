from datetime import date

import pytest

from budget_insights.core.errors import InvalidRecordError
from budget_insights.utils.aggregator import Aggregator, Granularity
from budget_insights.utils.forecast import (
    category_growth_series,
    forecast,
    forecast_next,
    forecast_window,
    growth,
    growth_rate,
)

from conftest import make_tx, utc


def test_growth_without_data_is_zero():
    assert growth([], "Food", "2025-02") == 0


def test_growth_from_empty_previous_month():
    expenses = [make_tx("a", "Food", 50.0, utc(2025, 2, 10))]
    assert growth(expenses, "Food", "2025-02") == 100


def test_growth_percent_change():
    expenses = [
        make_tx("a", "Food", 200.0, utc(2025, 1, 10)),
        make_tx("b", "Food", 120.0, utc(2025, 2, 3)),
        make_tx("c", "Food", 180.0, utc(2025, 2, 20)),
        make_tx("d", "Transport", 999.0, utc(2025, 2, 20)),
    ]
    assert growth(expenses, "Food", "2025-02") == 50.0
    assert growth(expenses, "Food", date(2025, 3, 1)) == -100.0


def test_growth_crosses_year_boundary():
    expenses = [
        make_tx("a", "Bills", 100.0, utc(2024, 12, 5)),
        make_tx("b", "Bills", 150.0, utc(2025, 1, 5)),
    ]
    assert growth(expenses, "Bills", "2025-01") == 50.0


def test_growth_rate_rules():
    assert growth_rate(0, 0) == 0
    assert growth_rate(0, 0.01) == 100
    assert growth_rate(200, 100) == -50.0


def test_forecast_linear_delta():
    result = forecast([100, 150, 200])
    assert result.average_delta == 50
    assert result.predicted_total == 250
    assert result.sufficient_data is True
    assert forecast_next([("2025-01", 100.0), ("2025-02", 40.0)]) == -20.0


def test_forecast_needs_two_points():
    result = forecast([100])
    assert result.sufficient_data is False
    assert result.predicted_total == 0
    assert forecast_next([]) == 0


def test_forecast_accepts_buckets():
    expenses = [
        make_tx("a", "Food", 100.0, utc(2024, 12, 5)),
        make_tx("b", "Food", 150.0, utc(2025, 1, 5)),
        make_tx("c", "Food", 200.0, utc(2025, 2, 5)),
    ]
    buckets = Aggregator().bucket(expenses, Granularity.MONTH, date(2025, 2, 28), 3)
    assert forecast_next(buckets) == 250


def test_forecast_window():
    expenses = [
        make_tx("a", "Food", 100.0, utc(2024, 12, 5)),
        make_tx("b", "Food", 150.0, utc(2025, 1, 5)),
        make_tx("c", "Transport", 200.0, utc(2025, 2, 5)),
    ]
    window = forecast_window(expenses, date(2025, 3, 20), history=3, horizon=2)
    points = window.points

    assert [p.month for p in points] == ["2024-12", "2025-01", "2025-02", "2025-03", "2025-04"]
    assert [p.label for p in points] == ["Dec", "Jan", "Feb", "Mar", "Apr"]
    assert [p.actual for p in points] == [100.0, 150.0, 200.0, None, None]
    assert [p.predicted for p in points] == [None, None, None, 250.0, 250.0]
    assert window.forecast.sufficient_data is True
    assert window.to_dict()["sufficient_data"] is True


def test_forecast_window_ignores_the_current_partial_month():
    expenses = [
        make_tx("a", "Food", 100.0, utc(2024, 12, 5)),
        make_tx("b", "Food", 150.0, utc(2025, 1, 5)),
        make_tx("c", "Food", 200.0, utc(2025, 2, 5)),
        make_tx("d", "Food", 3.0, utc(2025, 3, 1, 9)),
    ]
    points = forecast_window(expenses, date(2025, 3, 2)).points

    assert [(p.month, p.actual, p.predicted) for p in points] == [
        ("2024-12", 100.0, None),
        ("2025-01", 150.0, None),
        ("2025-02", 200.0, None),
        ("2025-03", None, 250.0),
        ("2025-04", None, 250.0),
    ]


def test_forecast_window_without_enough_history():
    empty = forecast_window([], date(2025, 3, 2))
    assert empty.forecast.sufficient_data is False
    assert [p.predicted for p in empty.points[3:]] == [0, 0]

    one_month = forecast_window([make_tx("a", "Food", 80.0, utc(2025, 2, 5))], date(2025, 3, 2))
    assert one_month.forecast.sufficient_data is False
    assert one_month.points[-1].predicted == 0

    starting = forecast_window(
        [make_tx("a", "Food", 100.0, utc(2025, 1, 5)), make_tx("b", "Food", 150.0, utc(2025, 2, 5))],
        date(2025, 3, 2),
    )
    assert starting.forecast.sufficient_data is True
    assert starting.points[-1].predicted == 225.0

    with pytest.raises(InvalidRecordError):
        forecast_window([], date(2025, 2, 10), history=0)


def test_category_growth_series():
    expenses = [
        make_tx("a", "Food", 100.0, utc(2025, 1, 5)),
        make_tx("b", "Food", 150.0, utc(2025, 2, 5)),
        make_tx("c", "Bills", 80.0, utc(2025, 2, 6)),
    ]
    series = category_growth_series(expenses, date(2025, 2, 10), months=2)

    assert [(g.category, g.month, g.growth) for g in series] == [
        ("Bills", "2025-01", 0.0),
        ("Bills", "2025-02", 100.0),
        ("Food", "2025-01", 100.0),
        ("Food", "2025-02", 50.0),
    ]
