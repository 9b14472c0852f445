"""Tenant notification for invoices produced by the recurring engine."""
import asyncio
import logging
from typing import Optional

from app.models.invoice import Invoice
from app.models.property import Property
from app.models.tenant import Tenant
from app.services.email_service import EmailService, get_email_service
from app.services.invoice_pdf import InvoicePDFData, InvoicePDFRenderer

logger = logging.getLogger(__name__)


class RecurringInvoiceNotifier:
    """Renders the invoice PDF and emails it to the tenant."""

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        pdf_renderer: Optional[InvoicePDFRenderer] = None,
    ):
        self.email_service = email_service or get_email_service()
        self.pdf_renderer = pdf_renderer or InvoicePDFRenderer()

    async def notify(self, invoice: Invoice, tenant: Tenant, prop: Property) -> bool:
        """
        Send ``invoice`` to the tenant's email address.

        Returns:
            True if the email was handed to the SMTP server
        """
        if not tenant.email:
            logger.info(f"Tenant {tenant.id} has no email; skipping notification for {invoice.invoice_number}")
            return False

        # PDF rendering and SMTP are blocking
        pdf_content = await asyncio.to_thread(
            self.pdf_renderer.render, InvoicePDFData.from_invoice(invoice, prop)
        )

        sent = await asyncio.to_thread(
            self.email_service.send_recurring_invoice_email,
            to_email=tenant.email,
            tenant_name=tenant.name,
            invoice_number=invoice.invoice_number,
            total_amount=invoice.total_amount,
            due_date=invoice.due_date,
            company_name=invoice.company_name or "AXIS CRM",
            pdf_content=pdf_content,
        )
        if not sent:
            logger.warning(f"Invoice {invoice.invoice_number} email to {tenant.email} was not sent")
        return sent
