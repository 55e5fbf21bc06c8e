"""
APScheduler Configuration

Background job scheduler for the pallet ledger:
- Business clock advance every SYSTEM_TIMESTAMP_ADVANCE_MINUTES
- Full pallet reconciliation once a day at PALLET_RECONCILE_CRON_HOUR

Both jobs can also be triggered externally (cron endpoint, operator
endpoint); the scheduler is only a convenience for single-node deployments.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

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
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE
)


def start_scheduler():
    """Start the background job scheduler."""
    if not scheduler.running:
        from app.jobs.pallet_jobs import advance_system_timestamp, reconcile_all_pallets

        # Advance the business clock
        scheduler.add_job(
            advance_system_timestamp,
            'interval',
            minutes=settings.SYSTEM_TIMESTAMP_ADVANCE_MINUTES,
            id='advance_system_timestamp',
            name='Advance System Timestamp',
            replace_existing=True,
        )

        # Re-derive every consignment's counters
        scheduler.add_job(
            reconcile_all_pallets,
            'cron',
            hour=settings.PALLET_RECONCILE_CRON_HOUR,
            minute=5,
            id='reconcile_all_pallets',
            name='Reconcile All Pallets',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")

        # Log all scheduled jobs
        jobs = scheduler.get_jobs()
        for job in jobs:
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")
