"""
Background Jobs Module

Handles scheduled tasks for:
- Overdue bill sweep
- Nightly balance reconciliation
"""

from dairy_billing.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from dairy_billing.jobs.overdue_sweep import run_overdue_sweep_job
from dairy_billing.jobs.reconciliation import run_reconciliation_job

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "run_overdue_sweep_job",
    "run_reconciliation_job",
]
