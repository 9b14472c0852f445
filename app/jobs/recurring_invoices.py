"""
Recurring Invoice Generation Job.

Generates invoices for every active recurring invoice template whose
next_generation_date has been reached.

Templates are processed one at a time. A failure on one template is
recorded in the summary and never stops the remaining templates.

Triggers:
- Daily scheduled job (via APScheduler)
- Cron endpoint: GET/POST /api/v1/cron/recurring-invoices
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.recurring_invoice import RecurringInvoice
from app.services.recurring_invoice_service import RecurringInvoiceService
from app.services.recurring_schedule import ensure_utc

logger = logging.getLogger(__name__)


async def run_recurring_invoices_job(
    db: AsyncSession,
    now: Optional[datetime] = None,
    service: Optional[RecurringInvoiceService] = None,
) -> Dict[str, Any]:
    """
    Process all recurring invoices that are due.

    Args:
        db: Database session
        now: Moment of the run (defaults to the current UTC time)
        service: Service to generate with (defaults to one bound to ``db``)

    Returns:
        {"processed", "generated", "errors": [{"id", "error"}], "started_at", "completed_at"}
    """
    now = ensure_utc(now) or datetime.now(timezone.utc)
    service = service or RecurringInvoiceService(db)

    logger.info("Starting recurring invoice job...")

    results = {
        "started_at": datetime.now(timezone.utc).isoformat(),
        "processed": 0,
        "generated": 0,
        "errors": [],
    }

    try:
        query = (
            select(RecurringInvoice.id)
            .where(
                and_(
                    RecurringInvoice.is_active == True,
                    RecurringInvoice.next_generation_date <= now,
                )
            )
            .order_by(RecurringInvoice.id)
        )
        result = await db.execute(query)
        due_ids = list(result.scalars().all())
    except Exception as e:
        logger.error(f"Error loading due recurring invoices: {e}")
        results["completed_at"] = datetime.now(timezone.utc).isoformat()
        return results

    logger.info(f"Found {len(due_ids)} recurring invoices due")

    for recurring_invoice_id in due_ids:
        results["processed"] += 1

        try:
            invoice_id = await service.generate(recurring_invoice_id, now=now)
            if invoice_id:
                results["generated"] += 1
        except Exception as e:
            logger.error(f"Error processing recurring invoice {recurring_invoice_id}: {e}")
            try:
                await db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed after recurring invoice {recurring_invoice_id}: {rollback_error}")
            results["errors"].append({
                "id": recurring_invoice_id,
                "error": str(e) or type(e).__name__,
            })

    results["completed_at"] = datetime.now(timezone.utc).isoformat()
    logger.info(
        f"Recurring invoice job completed: "
        f"{results['processed']} processed, "
        f"{results['generated']} generated, "
        f"{len(results['errors'])} errors"
    )

    return results


# ==================== Scheduler Integration ====================

def register_recurring_invoices_job(scheduler):
    """
    Register the recurring invoice job with APScheduler.

    Runs daily at RECURRING_INVOICE_CRON_HOUR:RECURRING_INVOICE_CRON_MINUTE.
    """
    from app.database import get_db_session

    async def job_wrapper():
        async with get_db_session() as db:
            await run_recurring_invoices_job(db)

    scheduler.add_job(
        job_wrapper,
        'cron',
        hour=settings.RECURRING_INVOICE_CRON_HOUR,
        minute=settings.RECURRING_INVOICE_CRON_MINUTE,
        id='recurring_invoice_generation',
        name='Daily recurring invoice generation',
        replace_existing=True,
    )

    logger.info(
        f"Recurring invoice job registered to run daily at "
        f"{settings.RECURRING_INVOICE_CRON_HOUR:02d}:{settings.RECURRING_INVOICE_CRON_MINUTE:02d} "
        f"{settings.SCHEDULER_TIMEZONE}"
    )
