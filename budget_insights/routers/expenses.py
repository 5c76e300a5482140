from datetime import date
from typing import Dict

from fastapi import APIRouter, Depends, status

from budget_insights.core.dependencies import get_aggregator, get_current_owner_id, get_records
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.models.transaction import Transaction, TransactionCreate, TransactionUpdate
from budget_insights.utils.aggregator import Aggregator
from budget_insights.utils.budget_comparator import summarize_month
from budget_insights.utils.periods import month_bounds, parse_month

router = APIRouter()


def _public(transaction: Transaction) -> Dict:
    return transaction.model_dump(mode="json", by_alias=True)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: TransactionCreate,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    return _public(records.add_transaction(owner_id, expense))


@router.get("/daily/{day}")
def list_daily_expenses(
    day: date,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """
    day must follow YYYY-MM-DD format. Example: 2025-02-09
    """
    expenses = records.transactions_for_day(owner_id, day)
    return {
        "day": day.isoformat(),
        "expenses": [_public(tx) for tx in expenses],
        "total": aggregator.total(expenses),
    }


@router.get("/monthly/{month}")
def list_monthly_expenses(
    month: str,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """
    month must follow YYYY-MM format. Example: 2025-02
    """
    year, month_number = parse_month(month)
    start, end = month_bounds(year, month_number, records.tz)
    expenses = records.transactions_between(owner_id, start, end)
    budget = records.current_budget_settings(owner_id)
    summary = summarize_month(expenses, budget, month, tz=records.tz)

    return {
        "expenses": [_public(tx) for tx in expenses],
        "category_totals": aggregator.by_category(expenses),
        "summary": summary.to_dict(),
    }


@router.get("/grouped")
def list_expenses_by_month(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """Months that have expenses, newest first, each with its total."""
    grouped = aggregator.by_month(records.all_transactions(owner_id))
    return {
        "months": [
            {
                "month": month,
                "total": aggregator.total(grouped[month]),
                "expenses": [_public(tx) for tx in grouped[month]],
            }
            for month in sorted(grouped, reverse=True)
        ]
    }


@router.put("/{expense_id}")
def update_expense(
    expense_id: str,
    expense_update: TransactionUpdate,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    return _public(records.update_transaction(owner_id, expense_id, expense_update))


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: str,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    records.delete_transaction(owner_id, expense_id)
    return None
