"""Invoice model.

An invoice is a point-in-time snapshot: client and property details are
copied from the tenant/property rows when the invoice is created.
"""
from datetime import datetime, date, timezone
from enum import Enum
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, Date, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import JSONType, MoneyType, RateType


class InvoicePaymentStatus(str, Enum):
    """Invoice payment status enumeration."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Invoice issued to a tenant for a property.

    Invoices produced by the recurring engine carry the natural key
    REC-<recurring id>-<year>-<month> in invoice_number.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_invoice_date", "invoice_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    invoice_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Unique invoice number e.g., REC-12-2025-03"
    )

    # Ownership & references
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    recurring_invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("recurring_invoices.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Client snapshot
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    client_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Property snapshot
    property_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    property_unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Dates
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Amounts
    subtotal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False, default=Decimal("0"))

    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoicePaymentStatus.DRAFT.value,
        index=True,
        comment="draft, sent, paid, overdue, cancelled"
    )

    items: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Branding
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    company_tagline: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Invoice(number='{self.invoice_number}', status='{self.payment_status}')>"
