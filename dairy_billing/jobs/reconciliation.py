"""
Nightly Balance Reconciliation Job.

Recomputes every customer's balance from bills and payments. Customers whose
stored balance disagrees are put on billing hold and logged at ERROR; nothing
is corrected automatically.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.services.balance_reconciler import BalanceReconciler

logger = logging.getLogger(__name__)


async def run_reconciliation_job(db: AsyncSession) -> Dict[str, Any]:
    """
    Reconcile all customers and hold the inconsistent ones.

    Returns:
        Summary with the customers checked and the ones put on hold
    """
    logger.info("Starting balance reconciliation job...")

    results = {
        "started_at": datetime.now(timezone.utc).isoformat(),
        "customers_checked": 0,
        "customers_held": [],
        "errors": [],
    }

    try:
        report = await BalanceReconciler(db).reconcile_all(place_holds=True)
        results["customers_checked"] = report.checked
        results["customers_held"] = [str(r.customer_id) for r in report.inconsistent]
    except SQLAlchemyError as e:
        await db.rollback()
        error_msg = f"Balance reconciliation job failed: {e}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

    results["completed_at"] = datetime.now(timezone.utc).isoformat()
    logger.info(
        "Reconciliation job completed: %d customers checked, %d on hold",
        results["customers_checked"], len(results["customers_held"])
    )
    return results


def register_reconciliation_job(scheduler, hour: int):
    """Register the reconciliation to run nightly at `hour` (scheduler timezone)."""
    from dairy_billing.database import get_db_session

    async def job_wrapper():
        async with get_db_session() as db:
            await run_reconciliation_job(db)

    scheduler.add_job(
        job_wrapper,
        'cron',
        hour=hour,
        minute=0,
        id='balance_reconciliation',
        name='Nightly balance reconciliation',
        replace_existing=True,
    )

    logger.info("Reconciliation job registered to run daily at %02d:00", hour)
