"""
In-process APScheduler for the billing service.

Only the recurring invoice job is scheduled here. Deployments that rely on
an external cron calling /api/v1/cron/recurring-invoices can switch it off
with RECURRING_INVOICE_SCHEDULER_ENABLED=false.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

logger = logging.getLogger(__name__)


scheduler = AsyncIOScheduler(
    jobstores={'default': MemoryJobStore()},
    executors={'default': AsyncIOExecutor()},
    job_defaults={
        'coalesce': True,  # a backlog of missed runs fires once
        'max_instances': 1,  # never two batches at the same time
        'misfire_grace_time': 3600,
    },
    timezone=settings.SCHEDULER_TIMEZONE,
)


def start_scheduler():
    """Register jobs and start the scheduler (no-op when disabled or running)."""
    if not settings.RECURRING_INVOICE_SCHEDULER_ENABLED:
        logger.info("Recurring invoice scheduler disabled; relying on the cron endpoint")
        return
    if scheduler.running:
        return

    from app.jobs.recurring_invoices import register_recurring_invoices_job

    register_recurring_invoices_job(scheduler)
    scheduler.start()

    for job in scheduler.get_jobs():
        logger.info(f"Scheduled {job.id}: next run at {job.next_run_time}")


def shutdown_scheduler():
    """Stop the scheduler, letting a running batch finish."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")


def get_job_status():
    """Scheduled jobs, as reported by /health."""
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
