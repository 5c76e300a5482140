"""
Budget Router
Current budget settings and budget-vs-actual comparison per month
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends

from budget_insights.core.dependencies import get_current_owner_id, get_records
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.models.budget import BudgetSettingsUpdate
from budget_insights.utils.budget_comparator import summarize_month
from budget_insights.utils.periods import month_bounds, parse_month

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
def get_budget_settings(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    """
    Get the current budget settings; zero-valued defaults are created on first access.
    """
    budget = records.current_budget_settings(owner_id)
    return budget.model_dump(mode="json", by_alias=True)


@router.put("/")
def update_budget_settings(
    update: BudgetSettingsUpdate,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    """
    Overwrite the monthly budget and the per-category budgets.
    """
    current = records.current_budget_settings(owner_id)
    saved = records.save_budget_settings(
        owner_id, update.monthly_budget, update.category_budgets, existing=current
    )
    logger.info(f"Budget settings {saved.id} updated for owner {owner_id}")
    return saved.model_dump(mode="json", by_alias=True)


@router.get("/comparison/{month}")
def compare_month(
    month: str,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    """
    Spend against budget for a month (YYYY-MM), overall and per category.
    """
    year, month_number = parse_month(month)
    start, end = month_bounds(year, month_number, records.tz)
    expenses = records.transactions_between(owner_id, start, end)
    budget = records.current_budget_settings(owner_id)
    return summarize_month(expenses, budget, month, tz=records.tz).to_dict()
