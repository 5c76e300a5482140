from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from budget_insights.core.dependencies import get_aggregator, get_current_owner_id, get_records
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.utils.aggregator import Aggregator, Granularity
from budget_insights.utils.forecast import category_growth_series, forecast_window, growth

router = APIRouter()


def _reference(reference: Optional[date], records: RecordStoreAdapter) -> date:
    return reference or datetime.now(records.tz).date()


@router.get("/buckets")
def get_buckets(
    granularity: Granularity = Granularity.DAY,
    window: int = Query(7, ge=1, le=366),
    reference: Optional[date] = None,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """Zero-filled totals for ``window`` consecutive day/week/month buckets."""
    buckets = aggregator.bucket(
        records.all_transactions(owner_id), granularity, _reference(reference, records), window
    )
    return {"granularity": granularity.value, "buckets": [b.to_dict() for b in buckets]}


@router.get("/trend")
def get_spending_trend(
    months: int = Query(6, ge=1, le=24),
    reference: Optional[date] = None,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    trend = aggregator.spending_trend(
        records.all_transactions(owner_id), _reference(reference, records), months
    )
    return {"months": [b.to_dict() for b in trend]}


@router.get("/period/{period}")
def get_period_series(
    period: str,
    reference: Optional[date] = None,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    """period is one of 1W, 1M, 6M, 12M"""
    series = aggregator.period_series(
        records.all_transactions(owner_id), period, _reference(reference, records)
    )
    return {"period": period, "buckets": [b.to_dict() for b in series]}


@router.get("/pattern/hourly")
def get_hourly_pattern(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
    aggregator: Aggregator = Depends(get_aggregator),
):
    totals = aggregator.hourly_pattern(records.all_transactions(owner_id))
    return {"hours": [{"hour": hour, "amount": amount} for hour, amount in enumerate(totals)]}


@router.get("/growth")
def get_category_growth(
    months: int = Query(1, ge=1, le=12),
    reference: Optional[date] = None,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    series = category_growth_series(
        records.all_transactions(owner_id), _reference(reference, records), months, tz=records.tz
    )
    return {"growth": [item.to_dict() for item in series]}


@router.get("/growth/{category}/{month}")
def get_growth_for_category(
    category: str,
    month: str,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    """month must follow YYYY-MM format"""
    value = growth(records.all_transactions(owner_id), category, month, tz=records.tz)
    return {"category": category, "month": month, "growth": value}


@router.get("/forecast")
def get_forecast(
    history: int = Query(3, ge=1, le=24),
    horizon: int = Query(2, ge=0, le=12),
    reference: Optional[date] = None,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
):
    """Completed months as actuals, then predictions starting with the reference month."""
    window = forecast_window(
        records.all_transactions(owner_id),
        _reference(reference, records),
        history=history,
        horizon=horizon,
        tz=records.tz,
    )
    return window.to_dict()
