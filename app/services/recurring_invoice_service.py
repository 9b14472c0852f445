"""Recurring Invoice Service.

Materializes one invoice from a recurring invoice template:

1. Skip inactive / expired templates and templates whose tenant or
   property no longer exists.
2. Date the invoice on the template's billing day (never in the future).
3. Deduplicate on the natural key REC-<template id>-<year>-<month>, so a
   template produces at most one invoice per calendar month no matter how
   often it runs.
4. Insert the invoice, advance the template schedule (one transaction).
5. Email the tenant a PDF copy; failures there never undo steps 1-4.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.invoice import Invoice, InvoicePaymentStatus
from app.models.property import Property
from app.models.recurring_invoice import RecurringInvoice
from app.models.tenant import Tenant
from app.schemas.recurring_invoice import InvoiceTemplate
from app.services.recurring_schedule import (
    billing_date_for,
    ensure_utc,
    next_from_last_run,
    next_from_start,
)


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class RecurringInvoiceError(Exception):
    """Exception raised when a recurring invoice cannot be generated."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidInvoiceTemplateError(RecurringInvoiceError):
    """The stored invoice_template JSON does not have the expected shape."""
    pass


@dataclass
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def calculate_totals(template: InvoiceTemplate) -> InvoiceTotals:
    """Sum the line items and apply the template tax rate (rounded to cents)."""
    subtotal = sum((item.amount for item in template.items), Decimal("0"))
    subtotal = subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)
    tax_amount = (subtotal * template.tax_rate / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )


def build_invoice_number(recurring_invoice_id: int, invoice_date: date) -> str:
    """Natural key of the invoice a template produces for a billing month."""
    return f"REC-{recurring_invoice_id}-{invoice_date.year}-{invoice_date.month:02d}"


class RecurringInvoiceService:
    """Service generating invoices from recurring invoice templates."""

    def __init__(
        self,
        db: AsyncSession,
        notifier=None,
        anchor: Optional[str] = None,
        default_due_days: Optional[int] = None,
    ):
        self.db = db
        self._notifier = notifier
        self.anchor = anchor or settings.RECURRING_INVOICE_ANCHOR
        self.default_due_days = (
            default_due_days if default_due_days is not None
            else settings.RECURRING_INVOICE_DEFAULT_DUE_DAYS
        )

    @property
    def notifier(self):
        if self._notifier is None:
            from app.services.recurring_invoice_notifier import RecurringInvoiceNotifier
            self._notifier = RecurringInvoiceNotifier()
        return self._notifier

    async def get_template(self, recurring_invoice_id: int) -> Optional[RecurringInvoice]:
        return await self.db.get(RecurringInvoice, recurring_invoice_id)

    async def get_tenant(self, tenant_id: Optional[int]) -> Optional[Tenant]:
        if tenant_id is None:
            return None
        return await self.db.get(Tenant, tenant_id)

    async def get_property(self, property_id: Optional[int]) -> Optional[Property]:
        if property_id is None:
            return None
        return await self.db.get(Property, property_id)

    async def get_invoice_by_number(self, invoice_number: str) -> Optional[Invoice]:
        result = await self.db.execute(
            select(Invoice).where(Invoice.invoice_number == invoice_number)
        )
        return result.scalar_one_or_none()

    def parse_template(self, recurring: RecurringInvoice) -> InvoiceTemplate:
        """Validate the template JSON before any amount is computed from it."""
        try:
            return InvoiceTemplate.model_validate(recurring.invoice_template or {})
        except ValidationError as e:
            raise InvalidInvoiceTemplateError(
                f"Recurring invoice {recurring.id} has an invalid invoice template",
                details={"errors": e.errors(include_url=False)},
            ) from e

    def next_generation_date(
        self,
        recurring: RecurringInvoice,
        now: datetime,
        invoice_date: date,
    ) -> datetime:
        """
        Next due timestamp after generating ``invoice_date`` at ``now``.

        With the billing date anchor the schedule moves one period past the
        billed date, so a clamped month end (day 31 billed on April 30) is
        next due on May 31. The generation anchor applies the first-run rule
        to the moment of generation.
        """
        if self.anchor == "billing_date":
            billed_at = datetime.combine(invoice_date, now.timetz())
            return next_from_last_run(billed_at, recurring.frequency, recurring.day_of_month)
        return next_from_start(now, recurring.frequency, recurring.day_of_month)

    async def generate(
        self,
        recurring_invoice_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        """
        Generate the invoice for the current billing period.

        Args:
            recurring_invoice_id: Template ID
            now: Moment of generation (defaults to the current UTC time)

        Returns:
            ID of the new invoice, ID of the existing invoice when this period
            was already billed, or None when the template is skipped.

        Raises:
            InvalidInvoiceTemplateError: template JSON has the wrong shape
            RecurringInvoiceError / SQLAlchemyError: unexpected failures
        """
        now = ensure_utc(now) or datetime.now(timezone.utc)

        recurring = await self.get_template(recurring_invoice_id)
        if recurring is None or not recurring.is_active:
            logger.debug(f"Recurring invoice {recurring_invoice_id} missing or inactive, skipping")
            return None

        end_date = ensure_utc(recurring.end_date)
        if end_date and end_date < now:
            logger.info(f"Recurring invoice {recurring_invoice_id} ended on {end_date.date()}, skipping")
            return None

        tenant = await self.get_tenant(recurring.tenant_id)
        if tenant is None:
            logger.warning(f"Recurring invoice {recurring_invoice_id}: tenant {recurring.tenant_id} not found, skipping")
            return None

        prop = await self.get_property(recurring.property_id)
        if prop is None:
            logger.warning(f"Recurring invoice {recurring_invoice_id}: property {recurring.property_id} not found, skipping")
            return None

        template = self.parse_template(recurring)

        invoice_date = billing_date_for(now, recurring.day_of_month)
        due_days = template.due_days if template.due_days is not None else self.default_due_days
        due_date = invoice_date + timedelta(days=due_days)
        invoice_number = build_invoice_number(recurring.id, invoice_date)

        existing = await self.get_invoice_by_number(invoice_number)
        if existing:
            logger.info(f"Invoice {invoice_number} already exists (id={existing.id}), nothing to generate")
            return existing.id

        next_generation_date = self.next_generation_date(recurring, now, invoice_date)
        totals = calculate_totals(template)

        invoice = Invoice(
            invoice_number=invoice_number,
            user_id=recurring.user_id,
            property_id=prop.id,
            tenant_id=tenant.id,
            recurring_invoice_id=recurring.id,
            # Snapshot of tenant / property at generation time
            client_name=tenant.name,
            client_email=tenant.email,
            client_phone=tenant.phone,
            client_address=tenant.address,
            property_address=prop.address,
            property_unit=prop.unit,
            invoice_date=invoice_date,
            due_date=due_date,
            subtotal=totals.subtotal,
            tax_rate=template.tax_rate,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            payment_status=(
                InvoicePaymentStatus.SENT.value if template.auto_send
                else InvoicePaymentStatus.DRAFT.value
            ),
            items=[item.model_dump(mode="json", exclude_none=True) for item in template.items],
            notes=template.notes,
            payment_terms=template.payment_terms,
            company_name=settings.COMPANY_NAME,
            company_tagline=settings.COMPANY_TAGLINE,
        )
        self.db.add(invoice)

        try:
            await self.db.flush()
        except IntegrityError:
            # A concurrent run inserted the same period first
            await self.db.rollback()
            existing = await self.get_invoice_by_number(invoice_number)
            if existing:
                logger.info(f"Invoice {invoice_number} was created concurrently (id={existing.id})")
                return existing.id
            raise RecurringInvoiceError(
                f"Could not insert invoice {invoice_number}",
                details={"recurring_invoice_id": recurring_invoice_id},
            )

        recurring.last_generated_at = now
        recurring.next_generation_date = next_generation_date
        await self.db.commit()

        logger.info(
            f"Generated invoice {invoice_number} (id={invoice.id}) from recurring invoice "
            f"{recurring.id}: total {totals.total_amount}, next run {next_generation_date.isoformat()}"
        )

        await self._notify(invoice, tenant, prop)
        return invoice.id

    async def generate_or_none(
        self,
        recurring_invoice_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        """Like generate(), but unexpected errors are logged and reported as None."""
        try:
            return await self.generate(recurring_invoice_id, now=now)
        except Exception as e:
            logger.error(f"Error generating invoice from recurring invoice {recurring_invoice_id}: {e}")
            await self.db.rollback()
            return None

    async def _notify(self, invoice: Invoice, tenant: Tenant, prop: Property) -> None:
        """Best-effort PDF + email; never raises."""
        if not tenant.email:
            return
        try:
            await self.notifier.notify(invoice, tenant, prop)
        except Exception as e:
            logger.error(f"Error sending recurring invoice notification for invoice {invoice.id}: {e}")
