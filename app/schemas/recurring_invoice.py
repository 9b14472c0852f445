"""Pydantic schemas for recurring invoice templates."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.recurring_invoice import RecurringFrequency
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ==================== Invoice Template ====================

class LineItem(BaseModel):
    """One billable line of a recurring invoice template."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str = ""
    amount: Decimal = Decimal("0")
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None

    @field_validator("amount", mode="before")
    @classmethod
    def default_amount(cls, v):
        return Decimal("0") if v is None else v

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v):
        return "" if v is None else v


class InvoiceTemplate(BaseModel):
    """
    Typed view of the invoice_template JSON column.

    Stored with camelCase keys (taxRate, dueDays, paymentTerms, autoSend).
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[LineItem] = Field(default_factory=list)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, alias="taxRate")
    due_days: Optional[int] = Field(None, ge=0, alias="dueDays")
    notes: Optional[str] = None
    payment_terms: Optional[str] = Field(None, alias="paymentTerms")
    auto_send: bool = Field(False, alias="autoSend")

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, v):
        return [] if v is None else v

    @field_validator("tax_rate", mode="before")
    @classmethod
    def default_tax_rate(cls, v):
        return Decimal("0") if v is None else v

    def to_storage(self) -> dict:
        """JSON-safe dict for the invoice_template column."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def single_line(cls, amount: Decimal, description: str) -> "InvoiceTemplate":
        """Template with one line item, as built from the amount/description shortcut."""
        return cls(
            items=[LineItem(description=description, amount=amount, quantity=Decimal("1"), rate=amount)],
            tax_rate=Decimal("0"),
            notes=description,
        )


# ==================== Recurring Invoice ====================

class RecurringInvoiceCreate(BaseCreateSchema):
    """Schema for creating a recurring invoice template."""
    tenant_id: int = Field(..., alias="tenantId")
    property_id: int = Field(..., alias="propertyId")
    invoice_template: Optional[InvoiceTemplate] = Field(None, alias="invoiceTemplate")
    amount: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    frequency: RecurringFrequency
    day_of_month: int = Field(..., ge=1, le=31, alias="dayOfMonth")
    start_date: datetime = Field(..., alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    next_invoice_date: Optional[datetime] = Field(None, alias="nextInvoiceDate")

    @model_validator(mode="after")
    def check_window(self):
        if self.end_date and _as_utc(self.end_date) < _as_utc(self.start_date):
            raise ValueError("endDate must not be before startDate")
        return self


class RecurringInvoiceUpdate(BaseUpdateSchema):
    """Schema for updating a recurring invoice template."""
    invoice_template: Optional[InvoiceTemplate] = Field(None, alias="invoiceTemplate")
    amount: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    frequency: Optional[RecurringFrequency] = None
    day_of_month: Optional[int] = Field(None, ge=1, le=31, alias="dayOfMonth")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    is_active: Optional[bool] = Field(None, alias="isActive")


class TenantBrief(BaseResponseSchema):
    """Tenant summary shown next to a template."""
    id: int
    name: str
    email: Optional[str] = None


class PropertyBrief(BaseResponseSchema):
    """Property summary shown next to a template."""
    id: int
    title: str
    address: str


class RecurringInvoiceResponse(BaseResponseSchema):
    """Response schema for a recurring invoice template."""
    id: int
    user_id: str
    tenant_id: Optional[int] = None
    property_id: Optional[int] = None
    invoice_template: dict
    frequency: str
    day_of_month: int
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool
    last_generated_at: Optional[datetime] = None
    next_generation_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RecurringInvoiceListItem(RecurringInvoiceResponse):
    """Template with its tenant and property summaries."""
    tenant: Optional[TenantBrief] = None
    property: Optional[PropertyBrief] = None


# ==================== Generation ====================

class RecurringInvoiceGenerateResponse(BaseModel):
    """Result of a manual generation."""
    invoice_id: Optional[int] = None
    generated: bool


class RecurringInvoiceRunError(BaseModel):
    """A template that failed during a batch run."""
    id: int
    error: str


class RecurringInvoiceRunResponse(BaseModel):
    """Summary returned by the cron trigger."""
    success: bool
    timestamp: datetime
    processed: int
    generated: int
    errors: List[RecurringInvoiceRunError] = Field(default_factory=list)
