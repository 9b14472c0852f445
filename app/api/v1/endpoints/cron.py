"""
Cron trigger endpoints.

Called by an external scheduler (e.g. a platform cron hitting
/api/v1/cron/recurring-invoices daily at 01:00 UTC). To test locally:

    curl "http://localhost:8000/api/v1/cron/recurring-invoices?secret=YOUR_SECRET"
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends

from app.api.deps import DB, verify_cron_secret
from app.jobs.recurring_invoices import run_recurring_invoices_job
from app.schemas.recurring_invoice import RecurringInvoiceRunResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route(
    "/recurring-invoices",
    methods=["GET", "POST"],
    response_model=RecurringInvoiceRunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_recurring_invoices(db: DB):
    """Generate invoices for every recurring invoice template that is due."""
    results = await run_recurring_invoices_job(db)

    return RecurringInvoiceRunResponse(
        success=True,
        timestamp=datetime.now(timezone.utc),
        processed=results["processed"],
        generated=results["generated"],
        errors=results["errors"],
    )
