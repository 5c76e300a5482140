"""
Health Check Router
API status and record store connectivity
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from budget_insights.core.config import settings
from budget_insights.core.dependencies import get_store
from budget_insights.db.records import COLLECTIONS
from budget_insights.db.store import RecordStore
from budget_insights.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
def services_status(store: RecordStore = Depends(get_store)):
    """
    Check the record store collections and the scheduler.
    """
    collections = store.healthcheck(COLLECTIONS)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "store": {
                "backend": settings.STORE_BACKEND,
                "connected": all(state == "accessible" for state in collections.values()),
                "collections": collections,
            },
            "scheduler": get_scheduler_status(),
        },
    }
