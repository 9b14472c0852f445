from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Recurring billing
    recurring_invoices,
    # Scheduled triggers
    cron,
)

api_router = APIRouter(prefix="/api/v1")

# Recurring invoice templates
api_router.include_router(
    recurring_invoices.router,
    prefix="/recurring-invoices",
    tags=["Recurring Invoices"]
)

# Cron triggers
api_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["Cron"]
)
