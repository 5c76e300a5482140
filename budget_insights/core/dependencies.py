from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import Header

from budget_insights.core.config import settings
from budget_insights.core.errors import require_owner
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.db.store import MemoryRecordStore, RecordStore
from budget_insights.utils.aggregator import Aggregator
from budget_insights.utils.insight_pipeline import InsightPipeline
from budget_insights.utils.reasoning import GeminiReasoningService, ReasoningService


def get_current_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    """Owner id forwarded by the upstream authentication layer."""
    return require_owner(x_owner_id.strip() if x_owner_id else None)


@lru_cache
def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


@lru_cache
def get_store() -> RecordStore:
    if settings.STORE_BACKEND == "memory":
        return MemoryRecordStore()

    from budget_insights.db.dynamo import DynamoRecordStore

    return DynamoRecordStore()


@lru_cache
def get_records() -> RecordStoreAdapter:
    return RecordStoreAdapter(get_store(), tz=get_timezone())


def get_aggregator() -> Aggregator:
    return Aggregator(tz=get_timezone(), first_weekday=settings.FIRST_WEEKDAY)


@lru_cache
def get_reasoning_service() -> ReasoningService:
    return GeminiReasoningService()


@lru_cache
def get_pipeline() -> InsightPipeline:
    return InsightPipeline(
        get_records(),
        get_reasoning_service(),
        context_limit=settings.INSIGHT_CONTEXT_LIMIT,
        timeout=settings.INSIGHT_TIMEOUT_SECONDS,
        currency=settings.CURRENCY,
    )
