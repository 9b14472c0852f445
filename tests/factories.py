"""Factories for the records the recurring invoice engine reads."""
from datetime import date, datetime, timezone
from decimal import Decimal

from app.models.invoice import Invoice
from app.models.property import Property
from app.models.recurring_invoice import RecurringInvoice
from app.models.tenant import Tenant

USER_ID = "user_landlord_1"
OTHER_USER_ID = "user_landlord_2"


def rent_template(**overrides) -> dict:
    """Rent + parking at 10% tax: 1200.00 subtotal, 120.00 tax, 1320.00 total."""
    template = {
        "items": [
            {"description": "Monthly rent", "amount": 1000},
            {"description": "Parking", "amount": 200},
        ],
        "taxRate": 10,
        "dueDays": 15,
        "notes": "Thank you for your business",
        "paymentTerms": "Net 15",
        "autoSend": False,
    }
    template.update(overrides)
    return template


async def create_property(db, user_id: str = USER_ID, **overrides) -> Property:
    data = {
        "user_id": user_id,
        "title": "Maple Court",
        "address": "12 Maple Court, Springfield",
        "unit": "4B",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
        "property_type": "residential",
    }
    data.update(overrides)
    prop = Property(**data)
    db.add(prop)
    await db.commit()
    return prop


async def create_tenant(db, prop: Property = None, user_id: str = USER_ID, **overrides) -> Tenant:
    data = {
        "user_id": user_id,
        "property_id": prop.id if prop else None,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+1 555 0100",
        "address": "12 Maple Court, Springfield",
    }
    data.update(overrides)
    tenant = Tenant(**data)
    db.add(tenant)
    await db.commit()
    return tenant


async def create_recurring_invoice(
    db,
    tenant: Tenant = None,
    prop: Property = None,
    user_id: str = USER_ID,
    **overrides
) -> RecurringInvoice:
    data = {
        "user_id": user_id,
        "tenant_id": tenant.id if tenant else None,
        "property_id": prop.id if prop else None,
        "invoice_template": rent_template(),
        "frequency": "monthly",
        "day_of_month": 5,
        "start_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "end_date": None,
        "is_active": True,
        "next_generation_date": datetime(2024, 3, 5, tzinfo=timezone.utc),
    }
    data.update(overrides)
    recurring = RecurringInvoice(**data)
    db.add(recurring)
    await db.commit()
    return recurring


async def create_invoice(db, prop: Property, invoice_number: str, **overrides) -> Invoice:
    data = {
        "invoice_number": invoice_number,
        "user_id": prop.user_id,
        "property_id": prop.id,
        "client_name": "Jane Doe",
        "invoice_date": date(2024, 3, 5),
        "due_date": date(2024, 3, 20),
        "subtotal": Decimal("1200.00"),
        "tax_rate": Decimal("10.00"),
        "tax_amount": Decimal("120.00"),
        "total_amount": Decimal("1320.00"),
    }
    data.update(overrides)
    invoice = Invoice(**data)
    db.add(invoice)
    await db.commit()
    return invoice
