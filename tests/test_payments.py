from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from educore.api.v1.fees.service import compute_invoice_status
from educore.core.models import FeeAuditLog, FeePayment


@pytest.fixture()
async def invoice(client: AsyncClient, school, admin_headers, make_structure, make_learner) -> dict:
    structure = await make_structure(school, admin_headers, amounts=("5000.00",))
    learner = await make_learner(school)
    response = await client.post(
        "/api/v1/fees/invoices",
        json={
            "learner_id": str(learner.id),
            "fee_structure_id": structure["id"],
            "term": "TERM_1",
            "academic_year": 2025,
            "due_date": "2025-02-15",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


async def _pay(client: AsyncClient, headers, invoice_id: str, amount: str, method: str = "MPESA"):
    return await client.post(
        "/api/v1/fees/payments",
        json={"invoice_id": invoice_id, "amount": amount, "payment_method": method, "reference": "QWE123"},
        headers=headers,
    )


def test_compute_invoice_status() -> None:
    assert compute_invoice_status(Decimal("-1"), Decimal("101"), "PARTIAL") == "OVERPAID"
    assert compute_invoice_status(Decimal("0"), Decimal("100"), "PARTIAL") == "PAID"
    assert compute_invoice_status(Decimal("50"), Decimal("50"), "PENDING") == "PARTIAL"
    assert compute_invoice_status(Decimal("100"), Decimal("0"), "PENDING") == "PENDING"


async def test_partial_then_full_payment(client: AsyncClient, db_session, admin_headers, invoice) -> None:
    response = await _pay(client, admin_headers, invoice["id"], "3000")
    assert response.status_code == 201
    body = response.json()
    assert body["invoice"]["status"] == "PARTIAL"
    assert Decimal(body["invoice"]["balance"]) == Decimal("2000")
    assert Decimal(body["invoice"]["paid_amount"]) == Decimal("3000")
    assert body["payment"]["receipt_number"].startswith("RCP-")
    assert body["payment"]["receipt_number"].endswith("-000001")

    response = await _pay(client, admin_headers, invoice["id"], "2000")
    assert response.status_code == 201
    body = response.json()
    assert body["invoice"]["status"] == "PAID"
    assert Decimal(body["invoice"]["balance"]) == 0
    assert body["payment"]["receipt_number"].endswith("-000002")

    response = await _pay(client, admin_headers, invoice["id"], "100")
    assert response.status_code == 409

    # The rejected payment left nothing behind
    current = (await client.get(f"/api/v1/fees/invoices/{invoice['id']}", headers=admin_headers)).json()
    assert current["status"] == "PAID"
    assert Decimal(current["paid_amount"]) == Decimal("5000")
    payments = (await client.get(f"/api/v1/fees/invoices/{invoice['id']}/payments", headers=admin_headers)).json()
    assert [Decimal(p["amount"]) for p in payments] == [Decimal("3000"), Decimal("2000")]
    count = (await db_session.execute(select(func.count(FeePayment.id)))).scalar_one()
    assert count == 2

    audit = (
        await db_session.execute(select(FeeAuditLog).where(FeeAuditLog.action_type == "PAYMENT"))
    ).scalars().all()
    assert len(audit) == 2


async def test_overpayment_is_recorded(client: AsyncClient, admin_headers, invoice) -> None:
    response = await _pay(client, admin_headers, invoice["id"], "5500.00")
    assert response.status_code == 201
    body = response.json()["invoice"]
    assert body["status"] == "OVERPAID"
    assert Decimal(body["balance"]) == Decimal("-500")


async def test_waived_invoice_rejects_payment(client: AsyncClient, admin_headers, invoice) -> None:
    await client.post(f"/api/v1/fees/invoices/{invoice['id']}/waive", json={"reason": "Hardship"}, headers=admin_headers)
    response = await _pay(client, admin_headers, invoice["id"], "100")
    assert response.status_code == 409


async def test_non_positive_amount_rejected(client: AsyncClient, admin_headers, invoice) -> None:
    assert (await _pay(client, admin_headers, invoice["id"], "0")).status_code == 422
    assert (await _pay(client, admin_headers, invoice["id"], "-10")).status_code == 422


async def test_receipts_are_unique(client: AsyncClient, admin_headers, invoice) -> None:
    receipts = set()
    for _ in range(4):
        response = await _pay(client, admin_headers, invoice["id"], "1000")
        receipts.add(response.json()["payment"]["receipt_number"])
    assert len(receipts) == 4


async def test_cross_school_payment_forbidden(client: AsyncClient, other_admin, auth_headers, invoice) -> None:
    response = await _pay(client, auth_headers(other_admin), invoice["id"], "100")
    assert response.status_code == 403


async def test_unknown_invoice(client: AsyncClient, admin_headers) -> None:
    response = await _pay(client, admin_headers, "00000000-0000-0000-0000-000000000000", "100")
    assert response.status_code == 404
