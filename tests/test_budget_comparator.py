import pytest

from budget_insights.core.errors import InvalidRecordError
from budget_insights.models.budget import BudgetSettings, CategoryBudget
from budget_insights.utils.budget_comparator import Severity, classify, compare, summarize_month

from conftest import make_tx, utc


def make_budget(monthly_budget=500.0, **amounts):
    return BudgetSettings(
        owner_id="owner-1",
        monthly_budget=monthly_budget,
        category_budgets=[CategoryBudget(category=c, amount=a) for c, a in amounts.items()],
    )


budget = make_budget(Food=100.0, Transport=100.0, Bills=0.0, Shopping=200.0)


def test_classify_thresholds():
    assert classify(None) is Severity.UNKNOWN
    assert classify(0.0) is Severity.WITHIN
    assert classify(0.7999) is Severity.WITHIN
    assert classify(0.8) is Severity.NEAR
    assert classify(0.99) is Severity.NEAR
    assert classify(1.0) is Severity.OVER
    assert classify(1.5) is Severity.OVER


def test_compare_rows_follow_budget_order():
    rows = compare({"Food": 80.0, "Transport": 100.0, "Bills": 40.0, "Entertainment": 5.0}, budget)
    assert [row.category for row in rows] == ["Food", "Transport", "Bills", "Shopping"]

    food, transport, bills, shopping = rows
    assert (food.utilization, food.severity) == (0.8, Severity.NEAR)
    assert (transport.utilization, transport.severity) == (1.0, Severity.OVER)
    assert bills.utilization is None
    assert bills.severity is Severity.UNKNOWN
    assert shopping.spent == 0.0
    assert shopping.severity is Severity.WITHIN


def test_compare_to_dict():
    row = compare({"Food": 150.0}, budget)[0]
    assert row.to_dict() == {
        "category": "Food",
        "spent": 150.0,
        "budget_amount": 100.0,
        "utilization": 1.5,
        "severity": "over",
    }


def test_compare_rejects_out_of_domain_spend():
    with pytest.raises(InvalidRecordError):
        compare({"Food": -10.0}, budget)
    with pytest.raises(InvalidRecordError):
        compare({"Transport": float("nan")}, budget)
    with pytest.raises(InvalidRecordError):
        compare({"Shopping": float("inf")}, budget)


def test_summarize_month_only_counts_that_month():
    transactions = [
        make_tx("a", "Food", 60.0, utc(2025, 2, 3, 12)),
        make_tx("b", "Food", 30.0, utc(2025, 2, 14, 19)),
        make_tx("c", "Transport", 20.0, utc(2025, 2, 28, 23, 59)),
        make_tx("d", "Food", 500.0, utc(2025, 1, 31, 23, 59)),
        make_tx("e", "Food", 500.0, utc(2025, 3, 1)),
    ]
    summary = summarize_month(transactions, budget, "2025-02")

    assert summary.month == "2025-02"
    assert summary.spent == 110.0
    assert summary.remaining == 390.0
    assert summary.utilization == pytest.approx(0.22)
    assert summary.severity is Severity.WITHIN

    by_category = {row.category: row for row in summary.categories}
    assert by_category["Food"].spent == 90.0
    assert by_category["Food"].severity is Severity.NEAR
    assert by_category["Transport"].utilization == pytest.approx(0.2)
    assert summary.to_dict()["categories"][0]["severity"] == "near"


def test_summarize_month_without_monthly_budget():
    summary = summarize_month([make_tx("a", "Food", 10.0, utc(2025, 2, 3))], make_budget(0.0), "2025-02")
    assert summary.utilization is None
    assert summary.severity is Severity.UNKNOWN
    assert summary.remaining == -10.0
    assert summary.categories == []


def test_summarize_month_rejects_bad_month():
    with pytest.raises(InvalidRecordError):
        summarize_month([], budget, "2025-13")
    with pytest.raises(InvalidRecordError):
        summarize_month([], budget, "February")
