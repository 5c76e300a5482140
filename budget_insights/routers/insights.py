"""
Insights Router
Daily insight generation, recent insight listing and the per-owner daily schedule
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from budget_insights.core.config import settings
from budget_insights.core.dependencies import get_current_owner_id, get_pipeline, get_records
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.models.insight import Insight
from budget_insights.utils import scheduler
from budget_insights.utils.insight_pipeline import InsightPipeline

router = APIRouter()
logger = logging.getLogger(__name__)


class DailyScheduleUpdate(BaseModel):
    hour: int = Field(default=settings.DAILY_INSIGHT_HOUR, ge=0, le=23)
    minute: int = Field(default=settings.DAILY_INSIGHT_MINUTE, ge=0, le=59)


def _public(insight: Insight) -> Dict:
    return insight.model_dump(mode="json", by_alias=True)


@router.post("/daily")
async def generate_daily_insight(
    force: bool = False,
    owner_id: str = Depends(get_current_owner_id),
    pipeline: InsightPipeline = Depends(get_pipeline),
) -> Dict:
    """
    Generate today's insight. Returns the existing one if today's insight was
    already generated, unless ``force`` is set.
    """
    if force:
        insight = await pipeline.generate(owner_id)
        created = True
    else:
        insight, created = await pipeline.generate_once(owner_id)
    return {"created": created, "insight": _public(insight)}


@router.get("/recent")
async def list_recent_insights(
    limit: int = Query(10, ge=1, le=100),
    owner_id: str = Depends(get_current_owner_id),
    pipeline: InsightPipeline = Depends(get_pipeline),
) -> Dict:
    insights = await pipeline.fetch_recent(owner_id, limit)
    return {"insights": [_public(insight) for insight in insights], "count": len(insights)}


@router.get("/schedule")
def get_schedule(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    stored = records.insight_schedule(owner_id)
    status_info = scheduler.get_scheduler_status()
    job_id = f"{scheduler.JOB_PREFIX}{owner_id}"
    job = next((j for j in status_info["jobs"] if j["id"] == job_id), None)
    return {
        "service_running": status_info["running"],
        "enabled": stored.enabled if stored else False,
        "hour": stored.hour if stored else None,
        "minute": stored.minute if stored else None,
        "next_run": job["next_run"] if job else None,
    }


@router.post("/schedule")
def enable_schedule(
    update: DailyScheduleUpdate,
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    """Save the daily schedule; it takes effect now, or on the next start if the scheduler is off."""
    records.save_insight_schedule(owner_id, update.hour, update.minute, enabled=True)
    next_run = scheduler.schedule_owner(owner_id, update.hour, update.minute)
    return {
        "enabled": True,
        "hour": update.hour,
        "minute": update.minute,
        "next_run": next_run,
        "service_running": scheduler.get_scheduler_status()["running"],
    }


@router.delete("/schedule")
def disable_schedule(
    owner_id: str = Depends(get_current_owner_id),
    records: RecordStoreAdapter = Depends(get_records),
) -> Dict:
    stored = records.insight_schedule(owner_id)
    if stored is not None:
        records.save_insight_schedule(owner_id, stored.hour, stored.minute, enabled=False)
    removed = scheduler.unschedule_owner(owner_id)
    return {"enabled": False, "removed": removed}
