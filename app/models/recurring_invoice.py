"""Recurring invoice template model.

A template describes what to bill (line items, tax, terms) and when
(frequency + preferred day of month). The scheduling fields
last_generated_at / next_generation_date are advanced by the recurring
invoice engine after every successful generation.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import JSONType

if TYPE_CHECKING:
    from app.models.tenant import Tenant
    from app.models.property import Property


class RecurringFrequency(str, Enum):
    """Billing frequency."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RecurringInvoice(Base):
    """Recurring invoice template owned by a landlord account."""
    __tablename__ = "recurring_invoices"
    __table_args__ = (
        Index("ix_recurring_invoices_due", "is_active", "next_generation_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Billing target; nullable so a deleted tenant/property orphans the template
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    property_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    invoice_template: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        comment="items, taxRate, dueDays, notes, paymentTerms, autoSend"
    )

    frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RecurringFrequency.MONTHLY.value,
        comment="monthly, quarterly, yearly"
    )
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)

    # Active window
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Scheduling state
    last_generated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    next_generation_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Authoritative due timestamp for the next generation"
    )

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

    # Relationships
    tenant: Mapped[Optional["Tenant"]] = relationship("Tenant", lazy="selectin")
    property: Mapped[Optional["Property"]] = relationship("Property", lazy="selectin")

    def __repr__(self) -> str:
        return f"<RecurringInvoice(id={self.id}, frequency='{self.frequency}', day={self.day_of_month})>"
