from typing import Dict

from fastapi import APIRouter, Depends, status

from budget_insights.core.dependencies import get_current_owner_id, get_records
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.models.transaction import Income, IncomeCreate
from budget_insights.utils.aggregator import group_by_month

router = APIRouter()


def _public(income: Income) -> Dict:
    return income.model_dump(mode="json", by_alias=True)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_income(
    income: IncomeCreate,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    return _public(records.add_income(owner_id, income))


@router.get("/")
def list_incomes(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    """Incomes grouped by month (newest first) with monthly and overall totals."""
    incomes = records.all_incomes(owner_id)
    grouped = group_by_month(incomes, records.tz)

    return {
        "total": round(sum(income.amount for income in incomes), 2),
        "months": [
            {
                "month": month,
                "total": round(sum(income.amount for income in grouped[month]), 2),
                "incomes": [_public(income) for income in grouped[month]],
            }
            for month in sorted(grouped, reverse=True)
        ],
    }


@router.delete("/{income_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_income(
    income_id: str,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    records.delete_income(owner_id, income_id)
    return None
