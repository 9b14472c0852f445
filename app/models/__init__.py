"""ORM models; importing this package registers every table on Base.metadata."""
from app.models.property import Property
from app.models.tenant import Tenant
from app.models.recurring_invoice import RecurringInvoice, RecurringFrequency
from app.models.invoice import Invoice, InvoicePaymentStatus
from app.models.audit_log import AuditLog

__all__ = [
    "Property",
    "Tenant",
    "RecurringInvoice",
    "RecurringFrequency",
    "Invoice",
    "InvoicePaymentStatus",
    "AuditLog",
]
