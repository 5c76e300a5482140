from datetime import date

from budget_insights.models.budget import CategoryBudget
from budget_insights.models.transaction import TransactionCreate
from budget_insights.utils.aggregator import Aggregator
from budget_insights.utils.budget_comparator import Severity, compare
from budget_insights.utils.forecast import growth

from conftest import utc


def test_first_month_of_food_spending(records):
    records.add_transaction("owner-1", TransactionCreate(
        title="Breakfast", amount=20, category="Food", occurred_at=utc(2025, 3, 4, 8, 30),
    ))
    records.add_transaction("owner-1", TransactionCreate(
        title="Snack", amount=10, category="Food", occurred_at=utc(2025, 3, 11, 16, 0),
    ))
    current = records.current_budget_settings("owner-1")
    budget = records.save_budget_settings(
        "owner-1", 100.0, [CategoryBudget(category="Food", amount=50)], existing=current
    )

    expenses = records.all_transactions("owner-1")
    by_category = Aggregator().by_category(expenses)
    assert by_category == {"Food": 30}

    row = compare(by_category, budget)[0]
    assert row.to_dict() == {
        "category": "Food",
        "spent": 30.0,
        "budget_amount": 50.0,
        "utilization": 0.6,
        "severity": "within",
    }
    assert row.severity is Severity.WITHIN
    assert growth(expenses, "Food", date(2025, 3, 1)) == 100
