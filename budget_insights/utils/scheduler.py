"""
Scheduler Service
Runs the guarded daily insight generation for opted-in owners using APScheduler
"""
import asyncio
import logging
from typing import Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from budget_insights.core.config import settings
from budget_insights.utils.insight_pipeline import InsightPipeline

logger = logging.getLogger(__name__)

JOB_PREFIX = "daily_insight_"

# Scheduler instance (exported for use in the insights router)
scheduler: Optional[BackgroundScheduler] = None
_pipeline_factory: Optional[Callable[[], InsightPipeline]] = None


def daily_insight_job_for_owner(owner_id: str) -> Dict:
    """Job function to generate today's insight for a specific owner"""
    logger.info(f"Executing daily insight job for owner {owner_id}...")
    if _pipeline_factory is None:
        logger.error("Daily insight job ran before the scheduler was started")
        return {"success": False, "error": "scheduler not started"}
    try:
        insight, created = asyncio.run(_pipeline_factory().generate_once(owner_id))
        if created:
            logger.info(f"Daily insight {insight.id} created for owner {owner_id}")
        else:
            logger.info(f"Owner {owner_id} already had today's insight {insight.id}")
        return {"success": True, "insight_id": insight.id, "created": created}
    except Exception as e:
        # a failed run is retried by the next trigger, not here
        logger.error(f"Error in daily insight job for owner {owner_id}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}


def _add_owner_job(owner_id: str, hour: int, minute: int):
    return scheduler.add_job(
        daily_insight_job_for_owner,
        args=[owner_id],
        trigger=CronTrigger(hour=hour, minute=minute, timezone=settings.TIMEZONE),
        id=f"{JOB_PREFIX}{owner_id}",
        name=f"Daily Insight - {owner_id}",
        replace_existing=True,
    )


def start_scheduler(pipeline_factory: Callable[[], InsightPipeline]) -> None:
    """Start the background scheduler with one job per owner whose stored schedule is enabled"""
    global scheduler, _pipeline_factory

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    _pipeline_factory = pipeline_factory
    scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)

    schedules = pipeline_factory().records.enabled_insight_schedules()
    for schedule in schedules:
        _add_owner_job(schedule.owner_id, schedule.hour, schedule.minute)
        logger.info(
            f"Added daily insight job for owner {schedule.owner_id}: hour={schedule.hour}, minute={schedule.minute}"
        )

    scheduler.start()
    logger.info(f"Scheduler started with {len(schedules)} owner jobs.")


def stop_scheduler() -> None:
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def refresh_scheduler_jobs() -> None:
    """Resync owner jobs with the stored schedules, e.g. after they changed elsewhere"""
    if scheduler is None or not scheduler.running or _pipeline_factory is None:
        logger.warning("Scheduler is not running, cannot refresh jobs")
        return

    schedules = {s.owner_id: s for s in _pipeline_factory().records.enabled_insight_schedules()}
    for job in scheduler.get_jobs():
        if job.id.startswith(JOB_PREFIX) and job.id[len(JOB_PREFIX):] not in schedules:
            scheduler.remove_job(job.id)
            logger.info(f"Removed daily insight job for disabled owner {job.id[len(JOB_PREFIX):]}")
    for owner_id, schedule in schedules.items():
        _add_owner_job(owner_id, schedule.hour, schedule.minute)
    logger.info(f"Refreshed {len(schedules)} daily insight jobs")


def schedule_owner(
    owner_id: str,
    hour: int = settings.DAILY_INSIGHT_HOUR,
    minute: int = settings.DAILY_INSIGHT_MINUTE,
) -> Optional[str]:
    """
    Add or replace the running daily job for an owner. Returns the next run
    time, or None while the scheduler is stopped (the stored schedule is
    picked up on the next start).
    """
    if scheduler is None or not scheduler.running:
        logger.warning("Scheduler is not running, owner job will be added on start")
        return None

    job = _add_owner_job(owner_id, hour, minute)
    logger.info(f"Scheduled daily insight for owner {owner_id}: hour={hour}, minute={minute}")
    next_run = getattr(job, "next_run_time", None)
    return next_run.isoformat() if next_run else None


def unschedule_owner(owner_id: str) -> bool:
    if scheduler is None:
        return False
    job_id = f"{JOB_PREFIX}{owner_id}"
    if scheduler.get_job(job_id) is None:
        return False
    scheduler.remove_job(job_id)
    logger.info(f"Removed daily insight job for owner {owner_id}")
    return True


def get_scheduler_status() -> Dict:
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }
