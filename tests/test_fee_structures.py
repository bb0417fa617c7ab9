from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy import select

from educore.core.models import FeeAuditLog


async def test_create_structure_totals_items(client: AsyncClient, school, admin_headers, make_structure) -> None:
    structure = await make_structure(school, admin_headers, amounts=("3000.00", "1500.50", "499.50"))
    assert Decimal(structure["total_amount"]) == Decimal("5000.00")
    assert len(structure["items"]) == 3
    assert structure["invoice_count"] == 0
    assert structure["archived"] is False

    response = await client.get(f"/api/v1/fees/structures/{structure['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert Decimal(response.json()["total_amount"]) == Decimal("5000.00")


async def test_create_requires_items_from_own_school(
    client: AsyncClient, school, other_school, admin_headers, make_fee_type
) -> None:
    base = {"name": "Term fees", "academic_year": 2025, "term": "TERM_1"}

    response = await client.post("/api/v1/fees/structures", json={**base, "items": []}, headers=admin_headers)
    assert response.status_code == 422

    foreign = await make_fee_type(other_school)
    response = await client.post(
        "/api/v1/fees/structures",
        json={**base, "items": [{"fee_type_id": str(foreign.id), "amount": "100"}]},
        headers=admin_headers,
    )
    assert response.status_code == 400

    inactive = await make_fee_type(school, code="OLD", is_active=False)
    response = await client.post(
        "/api/v1/fees/structures",
        json={**base, "items": [{"fee_type_id": str(inactive.id), "amount": "100"}]},
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_duplicate_fee_type_in_items_rejected(client: AsyncClient, school, admin_headers, make_fee_type) -> None:
    ft = await make_fee_type(school)
    response = await client.post(
        "/api/v1/fees/structures",
        json={
            "name": "Term fees",
            "academic_year": 2025,
            "items": [{"fee_type_id": str(ft.id), "amount": "100"}, {"fee_type_id": str(ft.id), "amount": "200"}],
        },
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_duplicate_structure_conflicts(client: AsyncClient, school, admin_headers, make_structure, make_fee_type) -> None:
    await make_structure(school, admin_headers, name="Grade 4 Term 1")
    ft = await make_fee_type(school, code="EXTRA")
    response = await client.post(
        "/api/v1/fees/structures",
        json={
            "name": "Grade 4 Term 1",
            "grade": "GRADE_4",
            "term": "TERM_1",
            "academic_year": 2025,
            "items": [{"fee_type_id": str(ft.id), "amount": "100"}],
        },
        headers=admin_headers,
    )
    assert response.status_code == 409


async def test_list_filters_and_scoping(
    client: AsyncClient, school, other_school, admin_headers, other_admin, auth_headers, make_structure
) -> None:
    await make_structure(school, admin_headers, name="T1", term="TERM_1")
    await make_structure(school, admin_headers, name="T2", term="TERM_2")
    await make_structure(other_school, auth_headers(other_admin), name="Other")

    response = await client.get("/api/v1/fees/structures", headers=admin_headers)
    assert sorted(s["name"] for s in response.json()) == ["T1", "T2"]

    response = await client.get("/api/v1/fees/structures", params={"term": "TERM_2"}, headers=admin_headers)
    assert [s["name"] for s in response.json()] == ["T2"]


async def test_update_replaces_items_before_invoicing(
    client: AsyncClient, school, admin_headers, make_structure, make_fee_type
) -> None:
    structure = await make_structure(school, admin_headers)
    ft = await make_fee_type(school, code="BUS")
    response = await client.put(
        f"/api/v1/fees/structures/{structure['id']}",
        json={"name": "Renamed", "items": [{"fee_type_id": str(ft.id), "amount": "1200.00"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Renamed"
    assert [i["fee_type_id"] for i in body["items"]] == [str(ft.id)]
    assert Decimal(body["total_amount"]) == Decimal("1200.00")


async def test_invoiced_structure_is_frozen(
    client: AsyncClient, school, admin_headers, make_structure, make_learner, make_fee_type
) -> None:
    structure = await make_structure(school, admin_headers)
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

    ft = await make_fee_type(school, code="LATE")
    response = await client.put(
        f"/api/v1/fees/structures/{structure['id']}",
        json={"items": [{"fee_type_id": str(ft.id), "amount": "1.00"}]},
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = await client.put(
        f"/api/v1/fees/structures/{structure['id']}",
        json={"description": "Updated wording"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["invoice_count"] == 1

    response = await client.delete(f"/api/v1/fees/structures/{structure['id']}", headers=admin_headers)
    assert response.status_code == 409


async def test_delete_archives_for_school_roles(
    client: AsyncClient, db_session, school, admin, admin_headers, make_structure
) -> None:
    structure = await make_structure(school, admin_headers)
    response = await client.delete(f"/api/v1/fees/structures/{structure['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"id": structure["id"], "deleted": False, "archived": True}

    listed = await client.get("/api/v1/fees/structures", headers=admin_headers)
    assert listed.json() == []
    listed = await client.get("/api/v1/fees/structures", params={"include_archived": True}, headers=admin_headers)
    assert listed.json()[0]["archived"] is True

    logs = (await db_session.execute(select(FeeAuditLog).where(FeeAuditLog.action_type == "ARCHIVE"))).scalars().all()
    assert len(logs) == 1
    assert logs[0].changed_by == admin.id

    response = await client.put(
        f"/api/v1/fees/structures/{structure['id']}", json={"name": "Back"}, headers=admin_headers
    )
    assert response.status_code == 409


async def test_super_admin_hard_deletes(
    client: AsyncClient, school, super_admin, admin_headers, auth_headers, make_structure
) -> None:
    structure = await make_structure(school, admin_headers)
    headers = auth_headers(super_admin, {"X-School-Id": str(school.id)})
    response = await client.delete(f"/api/v1/fees/structures/{structure['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["deleted"] is True
    response = await client.get(f"/api/v1/fees/structures/{structure['id']}", headers=headers)
    assert response.status_code == 404


async def test_bursar_cannot_delete(client: AsyncClient, school, make_user, auth_headers, admin_headers, make_structure) -> None:
    structure = await make_structure(school, admin_headers)
    bursar = await make_user(school, "BURSAR")
    response = await client.delete(f"/api/v1/fees/structures/{structure['id']}", headers=auth_headers(bursar))
    assert response.status_code == 403
