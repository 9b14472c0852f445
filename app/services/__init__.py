# Services module
from app.services.recurring_invoice_service import (
    RecurringInvoiceService,
    RecurringInvoiceError,
    InvalidInvoiceTemplateError,
)
from app.services.recurring_invoice_notifier import RecurringInvoiceNotifier
from app.services.email_service import EmailService, get_email_service
from app.services.invoice_pdf import InvoicePDFRenderer, InvoicePDFData
from app.services.audit_service import AuditService

__all__ = [
    "RecurringInvoiceService",
    "RecurringInvoiceError",
    "InvalidInvoiceTemplateError",
    # Notifications
    "RecurringInvoiceNotifier",
    "EmailService",
    "get_email_service",
    "InvoicePDFRenderer",
    "InvoicePDFData",
    # Audit
    "AuditService",
]
