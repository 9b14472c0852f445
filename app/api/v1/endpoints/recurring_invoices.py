"""API endpoints for recurring invoice templates."""
from typing import Optional, List
import logging

from fastapi import APIRouter, HTTPException, status, Query
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload

from app.api.deps import DB, CurrentUserId
from app.models.property import Property
from app.models.recurring_invoice import RecurringInvoice
from app.models.tenant import Tenant
from app.schemas.recurring_invoice import (
    InvoiceTemplate,
    RecurringInvoiceCreate,
    RecurringInvoiceUpdate,
    RecurringInvoiceResponse,
    RecurringInvoiceListItem,
    RecurringInvoiceGenerateResponse,
)
from app.services.audit_service import AuditService
from app.services.recurring_invoice_service import RecurringInvoiceService
from app.services.recurring_schedule import ensure_utc, next_from_start

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_owned_template(
    db,
    recurring_invoice_id: int,
    user_id: str,
) -> RecurringInvoice:
    query = select(RecurringInvoice).where(
        and_(
            RecurringInvoice.id == recurring_invoice_id,
            RecurringInvoice.user_id == user_id,
        )
    )
    result = await db.execute(query)
    recurring = result.scalar_one_or_none()

    if not recurring:
        raise HTTPException(status_code=404, detail="Recurring invoice not found")
    return recurring


# ==================== Recurring Invoices ====================

@router.get("", response_model=List[RecurringInvoiceListItem])
async def list_recurring_invoices(
    db: DB,
    user_id: CurrentUserId,
    tenant_id: Optional[int] = Query(None),
    property_id: Optional[int] = Query(None),
):
    """List the caller's recurring invoice templates."""
    filters = [RecurringInvoice.user_id == user_id]
    if tenant_id:
        filters.append(RecurringInvoice.tenant_id == tenant_id)
    if property_id:
        filters.append(RecurringInvoice.property_id == property_id)

    query = (
        select(RecurringInvoice)
        .options(
            selectinload(RecurringInvoice.tenant),
            selectinload(RecurringInvoice.property),
        )
        .where(and_(*filters))
        .order_by(RecurringInvoice.created_at.desc(), RecurringInvoice.id.desc())
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=RecurringInvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_invoice(
    recurring_in: RecurringInvoiceCreate,
    db: DB,
    user_id: CurrentUserId,
):
    """
    Create a recurring invoice template.

    Either a full ``invoiceTemplate`` or ``amount`` + ``description`` (a
    single line item) must be given.
    """
    if recurring_in.invoice_template is not None:
        template = recurring_in.invoice_template
    elif recurring_in.amount is not None and recurring_in.description:
        template = InvoiceTemplate.single_line(recurring_in.amount, recurring_in.description)
    else:
        raise HTTPException(
            status_code=400,
            detail="Either invoiceTemplate or amount and description are required"
        )

    tenant = await db.get(Tenant, recurring_in.tenant_id)
    if not tenant or tenant.user_id != user_id:
        raise HTTPException(status_code=404, detail="Tenant not found")

    prop = await db.get(Property, recurring_in.property_id)
    if not prop or prop.user_id != user_id:
        raise HTTPException(status_code=404, detail="Property not found")

    start_date = ensure_utc(recurring_in.start_date)
    next_generation_date = ensure_utc(recurring_in.next_invoice_date) or next_from_start(
        start_date, recurring_in.frequency.value, recurring_in.day_of_month
    )

    recurring = RecurringInvoice(
        user_id=user_id,
        tenant_id=tenant.id,
        property_id=prop.id,
        invoice_template=template.to_storage(),
        frequency=recurring_in.frequency.value,
        day_of_month=recurring_in.day_of_month,
        start_date=start_date,
        end_date=ensure_utc(recurring_in.end_date),
        is_active=True,
        next_generation_date=next_generation_date,
    )
    db.add(recurring)
    await db.flush()

    await AuditService(db).log_recurring_invoice_created(
        user_id=user_id,
        recurring_invoice_id=recurring.id,
        tenant_name=tenant.name,
        frequency=recurring.frequency,
        day_of_month=recurring.day_of_month,
    )
    await db.commit()
    await db.refresh(recurring)

    logger.info(
        f"Created recurring invoice {recurring.id} for tenant {tenant.id} "
        f"({recurring.frequency}, day {recurring.day_of_month}), next run {next_generation_date.isoformat()}"
    )
    return recurring


@router.get("/{recurring_invoice_id}", response_model=RecurringInvoiceListItem)
async def get_recurring_invoice(
    recurring_invoice_id: int,
    db: DB,
    user_id: CurrentUserId,
):
    """Get a recurring invoice template by ID."""
    return await _get_owned_template(db, recurring_invoice_id, user_id)


@router.put("/{recurring_invoice_id}", response_model=RecurringInvoiceResponse)
async def update_recurring_invoice(
    recurring_invoice_id: int,
    recurring_in: RecurringInvoiceUpdate,
    db: DB,
    user_id: CurrentUserId,
):
    """
    Update a recurring invoice template.

    Changing frequency, dayOfMonth or startDate recomputes
    next_generation_date from the (new) start date.
    """
    recurring = await _get_owned_template(db, recurring_invoice_id, user_id)
    update_data = recurring_in.model_dump(exclude_unset=True)

    if recurring_in.invoice_template is not None:
        recurring.invoice_template = recurring_in.invoice_template.to_storage()
    elif recurring_in.amount is not None and recurring_in.description:
        recurring.invoice_template = InvoiceTemplate.single_line(
            recurring_in.amount, recurring_in.description
        ).to_storage()

    if recurring_in.frequency is not None:
        recurring.frequency = recurring_in.frequency.value
    if recurring_in.day_of_month is not None:
        recurring.day_of_month = recurring_in.day_of_month
    if recurring_in.start_date is not None:
        recurring.start_date = ensure_utc(recurring_in.start_date)
    if "end_date" in update_data:
        recurring.end_date = ensure_utc(recurring_in.end_date)
    if recurring_in.is_active is not None:
        recurring.is_active = recurring_in.is_active

    end_date = ensure_utc(recurring.end_date)
    if end_date and end_date < ensure_utc(recurring.start_date):
        raise HTTPException(status_code=400, detail="endDate must not be before startDate")

    if update_data.keys() & {"frequency", "day_of_month", "start_date"}:
        recurring.next_generation_date = next_from_start(
            ensure_utc(recurring.start_date),
            recurring.frequency,
            recurring.day_of_month,
        )

    await AuditService(db).log_recurring_invoice_updated(
        user_id=user_id,
        recurring_invoice_id=recurring.id,
        changes=recurring_in.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    await db.refresh(recurring)
    return recurring


@router.delete("/{recurring_invoice_id}")
async def delete_recurring_invoice(
    recurring_invoice_id: int,
    db: DB,
    user_id: CurrentUserId,
):
    """Delete a recurring invoice template (generated invoices are kept)."""
    recurring = await _get_owned_template(db, recurring_invoice_id, user_id)
    await db.delete(recurring)
    await AuditService(db).log_recurring_invoice_deleted(user_id, recurring_invoice_id)
    await db.commit()
    return {"success": True}


@router.post("/{recurring_invoice_id}/generate", response_model=RecurringInvoiceGenerateResponse)
async def generate_recurring_invoice(
    recurring_invoice_id: int,
    db: DB,
    user_id: CurrentUserId,
):
    """Generate the invoice for the current billing period now."""
    await _get_owned_template(db, recurring_invoice_id, user_id)

    service = RecurringInvoiceService(db)
    invoice_id = await service.generate_or_none(recurring_invoice_id)

    return RecurringInvoiceGenerateResponse(
        invoice_id=invoice_id,
        generated=invoice_id is not None,
    )
