"""
Overdue Sweep Job.

Marks unpaid bills whose due date has passed as overdue. Payments and
balances are not touched.

Triggers:
- Daily scheduled job (via APScheduler)
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.services.payment_processor import PaymentProcessor

logger = logging.getLogger(__name__)


async def run_overdue_sweep_job(db: AsyncSession, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Mark overdue bills.

    Returns:
        Summary with the number of bills moved to overdue
    """
    today = today or date.today()
    logger.info("Starting overdue sweep for %s...", today)

    results = {
        "started_at": datetime.now(timezone.utc).isoformat(),
        "as_of": today.isoformat(),
        "bills_marked_overdue": 0,
        "errors": [],
    }

    try:
        results["bills_marked_overdue"] = await PaymentProcessor(db, today=today).mark_overdue_bills(today)
    except SQLAlchemyError as e:
        await db.rollback()
        error_msg = f"Overdue sweep failed: {e}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

    results["completed_at"] = datetime.now(timezone.utc).isoformat()
    logger.info("Overdue sweep completed: %d bills marked overdue", results["bills_marked_overdue"])
    return results


def register_overdue_sweep_job(scheduler, hour: int):
    """Register the overdue sweep to run daily at `hour` (scheduler timezone)."""
    from dairy_billing.database import get_db_session

    async def job_wrapper():
        async with get_db_session() as db:
            await run_overdue_sweep_job(db)

    scheduler.add_job(
        job_wrapper,
        'cron',
        hour=hour,
        minute=0,
        id='overdue_bill_sweep',
        name='Daily overdue bill sweep',
        replace_existing=True,
    )

    logger.info("Overdue sweep job registered to run daily at %02d:00", hour)
