# app/jobs/scheduler.py
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from app.schemas import ScanRequest
from app.workers import run_scan_batch
from app.config import settings

logger = logging.getLogger(__name__)

async def scheduled_scan():
    summary = await run_scan_batch(ScanRequest())
    if not summary.get("ok"):
        logger.error("Scheduled scan failed: %s", summary.get("error"))
    elif summary.get("msg") == "no_jobs":
        logger.info("Scheduled scan: no pending jobs for %s", summary.get("site_id"))
    else:
        logger.info(
            "Scheduled scan on %s: processed=%s inserted=%s",
            summary.get("site_id"), summary.get("processed"), summary.get("inserted"),
        )
    return summary

async def start_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler(timezone="UTC")
    # one batch at a time; overlapping runs would race on the same pending jobs
    sched.add_job(scheduled_scan, CronTrigger(minute=settings.SCAN_CRON_MINUTE), max_instances=1, coalesce=True)
    sched.start()
    return sched
