"""
APScheduler configuration for the billing background jobs.

- Overdue sweep: daily, marks unpaid bills past their due date overdue
- Balance reconciliation: nightly, holds customers whose balance disagrees
  with their bills and payments
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from dairy_billing.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 300,
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE
)


def start_scheduler():
    """Register the billing jobs and start the scheduler."""
    if not scheduler.running:
        from dairy_billing.jobs.overdue_sweep import register_overdue_sweep_job
        from dairy_billing.jobs.reconciliation import register_reconciliation_job

        register_overdue_sweep_job(scheduler, settings.OVERDUE_SWEEP_HOUR)
        register_reconciliation_job(scheduler, settings.RECONCILIATION_HOUR)

        scheduler.start()
        logger.info("Background job scheduler started")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
