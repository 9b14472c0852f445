"""Tests for the recurring invoice and cron HTTP endpoints."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from app.config import settings
from app.core.security import create_access_token
from app.models.audit_log import AuditLog
from tests.factories import (
    OTHER_USER_ID,
    USER_ID,
    create_property,
    create_recurring_invoice,
    create_tenant,
)

BASE = "/api/v1/recurring-invoices"


@pytest.fixture
async def rental(db_session):
    prop = await create_property(db_session)
    tenant = await create_tenant(db_session, prop)
    return tenant, prop


def create_payload(tenant, prop, **overrides) -> dict:
    payload = {
        "tenantId": tenant.id,
        "propertyId": prop.id,
        "amount": 1500,
        "description": "Monthly rent",
        "frequency": "monthly",
        "dayOfMonth": 15,
        "startDate": "2024-01-20T00:00:00Z",
    }
    payload.update(overrides)
    return payload


class TestAuth:

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get(BASE)
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, client):
        response = await client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_from_amount_and_description(self, client, auth_headers, rental):
        tenant, prop = rental

        response = await client.post(BASE, json=create_payload(tenant, prop), headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["tenant_id"] == tenant.id
        assert body["property_id"] == prop.id
        assert body["frequency"] == "monthly"
        assert body["day_of_month"] == 15
        assert body["is_active"] is True
        assert body["next_generation_date"].startswith("2024-02-15")
        items = body["invoice_template"]["items"]
        assert len(items) == 1
        assert items[0]["description"] == "Monthly rent"
        assert body["invoice_template"]["notes"] == "Monthly rent"

    @pytest.mark.asyncio
    async def test_create_with_full_template(self, client, auth_headers, rental):
        tenant, prop = rental
        template = {
            "items": [
                {"description": "Rent", "amount": 1000},
                {"description": "Utilities", "amount": 150},
            ],
            "taxRate": 5,
            "dueDays": 10,
            "autoSend": True,
        }
        payload = create_payload(tenant, prop, invoiceTemplate=template, dayOfMonth=25)
        del payload["amount"], payload["description"]

        response = await client.post(BASE, json=payload, headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert [i["description"] for i in body["invoice_template"]["items"]] == ["Rent", "Utilities"]
        assert body["invoice_template"]["autoSend"] is True
        assert body["invoice_template"]["dueDays"] == 10
        assert body["next_generation_date"].startswith("2024-01-25")

    @pytest.mark.asyncio
    async def test_explicit_next_invoice_date(self, client, auth_headers, rental):
        tenant, prop = rental
        payload = create_payload(tenant, prop, nextInvoiceDate="2024-06-15T00:00:00Z")

        response = await client.post(BASE, json=payload, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["next_generation_date"].startswith("2024-06-15")

    @pytest.mark.asyncio
    async def test_requires_template_or_amount(self, client, auth_headers, rental):
        tenant, prop = rental
        payload = create_payload(tenant, prop)
        del payload["amount"]

        response = await client.post(BASE, json=payload, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rejects_invalid_day_of_month(self, client, auth_headers, rental):
        tenant, prop = rental

        response = await client.post(BASE, json=create_payload(tenant, prop, dayOfMonth=32), headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rejects_unknown_frequency(self, client, auth_headers, rental):
        tenant, prop = rental

        response = await client.post(BASE, json=create_payload(tenant, prop, frequency="weekly"), headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rejects_end_before_start(self, client, auth_headers, rental):
        tenant, prop = rental
        payload = create_payload(tenant, prop, endDate="2023-12-31T00:00:00Z")

        response = await client.post(BASE, json=payload, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_tenant_of_another_landlord(self, client, auth_headers, db_session, rental):
        _, prop = rental
        other_tenant = await create_tenant(db_session, user_id=OTHER_USER_ID, name="Someone Else")

        response = await client.post(BASE, json=create_payload(other_tenant, prop), headers=auth_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_property_of_another_landlord(self, client, auth_headers, db_session, rental):
        tenant, _ = rental
        other_prop = await create_property(db_session, user_id=OTHER_USER_ID)

        response = await client.post(BASE, json=create_payload(tenant, other_prop), headers=auth_headers)

        assert response.status_code == 404


class TestReadUpdateDelete:

    @pytest.mark.asyncio
    async def test_list_with_tenant_and_property(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        await create_recurring_invoice(db_session, tenant, prop)
        other_prop = await create_property(db_session, user_id=OTHER_USER_ID)
        other_tenant = await create_tenant(db_session, other_prop, user_id=OTHER_USER_ID)
        await create_recurring_invoice(db_session, other_tenant, other_prop, user_id=OTHER_USER_ID)

        response = await client.get(BASE, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["tenant"]["name"] == "Jane Doe"
        assert body[0]["property"]["title"] == "Maple Court"

    @pytest.mark.asyncio
    async def test_list_filters(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        second_tenant = await create_tenant(db_session, prop, name="John Roe")
        await create_recurring_invoice(db_session, tenant, prop)
        await create_recurring_invoice(db_session, second_tenant, prop)

        response = await client.get(BASE, params={"tenant_id": second_tenant.id}, headers=auth_headers)
        assert [r["tenant_id"] for r in response.json()] == [second_tenant.id]

        response = await client.get(BASE, params={"property_id": prop.id}, headers=auth_headers)
        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_get_one(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.get(f"{BASE}/{recurring.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["id"] == recurring.id
        assert response.json()["tenant"]["email"] == "jane@example.com"

    @pytest.mark.asyncio
    async def test_get_other_landlords_template(self, client, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)
        headers = {"Authorization": f"Bearer {create_access_token(OTHER_USER_ID)}"}

        response = await client.get(f"{BASE}/{recurring.id}", headers=headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_day_recomputes_next_date(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.put(f"{BASE}/{recurring.id}", json={"dayOfMonth": 20}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["day_of_month"] == 20
        # start_date is 2024-01-01, the 20th is still ahead in January
        assert body["next_generation_date"].startswith("2024-01-20")

    @pytest.mark.asyncio
    async def test_update_frequency_recomputes_next_date(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(
            db_session, tenant, prop, start_date=datetime(2024, 1, 10, tzinfo=timezone.utc)
        )

        response = await client.put(f"{BASE}/{recurring.id}", json={"frequency": "quarterly"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["frequency"] == "quarterly"
        assert response.json()["next_generation_date"].startswith("2024-04-05")

    @pytest.mark.asyncio
    async def test_deactivate_keeps_schedule(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.put(f"{BASE}/{recurring.id}", json={"isActive": False}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["next_generation_date"].startswith("2024-03-05")

    @pytest.mark.asyncio
    async def test_update_amount_rebuilds_template(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.put(
            f"{BASE}/{recurring.id}",
            json={"amount": 1800, "description": "Rent (renewed lease)"},
            headers=auth_headers,
        )

        items = response.json()["invoice_template"]["items"]
        assert [i["description"] for i in items] == ["Rent (renewed lease)"]

    @pytest.mark.asyncio
    async def test_update_rejects_end_before_start(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.put(
            f"{BASE}/{recurring.id}", json={"endDate": "2023-06-01T00:00:00Z"}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        response = await client.delete(f"{BASE}/{recurring.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        response = await client.get(f"{BASE}/{recurring.id}", headers=auth_headers)
        assert response.status_code == 404



async def audit_entries(db):
    result = await db.execute(select(AuditLog).order_by(AuditLog.id))
    return result.scalars().all()


class TestAuditLog:
    """Template changes are recorded in the audit log."""

    @pytest.mark.asyncio
    async def test_create_is_recorded(self, client, auth_headers, db_session, rental):
        tenant, prop = rental

        response = await client.post(BASE, json=create_payload(tenant, prop), headers=auth_headers)

        entries = await audit_entries(db_session)
        assert len(entries) == 1
        assert entries[0].user_id == USER_ID
        assert entries[0].action == "create"
        assert entries[0].entity_type == "invoice"
        assert entries[0].entity_id == response.json()["id"]
        assert entries[0].description == "Created recurring invoice for tenant Jane Doe"
        assert entries[0].metadata_ == {"frequency": "monthly", "day_of_month": 15}

    @pytest.mark.asyncio
    async def test_update_records_changed_fields(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        await client.put(f"{BASE}/{recurring.id}", json={"dayOfMonth": 20}, headers=auth_headers)

        entries = await audit_entries(db_session)
        assert [e.action for e in entries] == ["update"]
        assert entries[0].entity_id == recurring.id
        assert entries[0].metadata_ == {"day_of_month": 20}

    @pytest.mark.asyncio
    async def test_delete_is_recorded(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        await client.delete(f"{BASE}/{recurring.id}", headers=auth_headers)

        entries = await audit_entries(db_session)
        assert [e.action for e in entries] == ["delete"]
        assert entries[0].description == f"Deleted recurring invoice {recurring.id}"

    @pytest.mark.asyncio
    async def test_rejected_update_is_not_recorded(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop)

        await client.put(
            f"{BASE}/{recurring.id}", json={"endDate": "2023-06-01T00:00:00Z"}, headers=auth_headers
        )

        assert await audit_entries(db_session) == []

class TestManualGenerate:

    @pytest.mark.asyncio
    async def test_generate_now(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        # Day 1 has always been reached in the current month
        recurring = await create_recurring_invoice(db_session, tenant, prop, day_of_month=1)

        first = await client.post(f"{BASE}/{recurring.id}/generate", headers=auth_headers)
        second = await client.post(f"{BASE}/{recurring.id}/generate", headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["generated"] is True
        assert isinstance(first.json()["invoice_id"], int)
        assert second.json()["invoice_id"] == first.json()["invoice_id"]

    @pytest.mark.asyncio
    async def test_generate_inactive(self, client, auth_headers, db_session, rental):
        tenant, prop = rental
        recurring = await create_recurring_invoice(db_session, tenant, prop, is_active=False)

        response = await client.post(f"{BASE}/{recurring.id}/generate", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"invoice_id": None, "generated": False}

    @pytest.mark.asyncio
    async def test_generate_not_found(self, client, auth_headers):
        response = await client.post(f"{BASE}/9999/generate", headers=auth_headers)
        assert response.status_code == 404


class TestCron:

    @pytest.fixture(autouse=True)
    def cron_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    @pytest.mark.asyncio
    async def test_rejects_missing_secret(self, client):
        response = await client.get("/api/v1/cron/recurring-invoices")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_wrong_secret(self, client):
        response = await client.get("/api/v1/cron/recurring-invoices", params={"secret": "nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_runs_due_templates_with_query_secret(self, client, db_session, rental):
        tenant, prop = rental
        await create_recurring_invoice(db_session, tenant, prop, day_of_month=1)

        response = await client.get("/api/v1/cron/recurring-invoices", params={"secret": "s3cret"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["processed"] == 1
        assert body["generated"] == 1
        assert body["errors"] == []
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_accepts_bearer_secret(self, client):
        response = await client.post(
            "/api/v1/cron/recurring-invoices",
            headers={"Authorization": "Bearer s3cret"},
        )

        assert response.status_code == 200
        assert response.json()["processed"] == 0

    @pytest.mark.asyncio
    async def test_open_without_configured_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", None)

        response = await client.get("/api/v1/cron/recurring-invoices")

        assert response.status_code == 200


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["checks"]["database"] == "connected"
        assert response.json()["jobs"] == []
