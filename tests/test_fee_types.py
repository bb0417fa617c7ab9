from httpx import AsyncClient


async def test_create_and_list_fee_types(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-types",
        json={"code": " tuition ", "name": "Tuition", "category": "ACADEMIC"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["code"] == "TUITION"
    assert response.json()["is_active"] is True

    await client.post(
        "/api/v1/fee-types",
        json={"code": "BUS", "name": "Bus", "category": "TRANSPORT"},
        headers=admin_headers,
    )

    response = await client.get("/api/v1/fee-types", params={"category": "TRANSPORT"}, headers=admin_headers)
    assert [ft["code"] for ft in response.json()] == ["BUS"]


async def test_duplicate_code_conflicts(client: AsyncClient, admin_headers) -> None:
    payload = {"code": "TUITION", "name": "Tuition"}
    assert (await client.post("/api/v1/fee-types", json=payload, headers=admin_headers)).status_code == 201
    response = await client.post("/api/v1/fee-types", json={"code": "tuition", "name": "Again"}, headers=admin_headers)
    assert response.status_code == 409


async def test_same_code_in_two_schools(client: AsyncClient, admin_headers, other_admin, auth_headers) -> None:
    payload = {"code": "TUITION", "name": "Tuition"}
    assert (await client.post("/api/v1/fee-types", json=payload, headers=admin_headers)).status_code == 201
    assert (await client.post("/api/v1/fee-types", json=payload, headers=auth_headers(other_admin))).status_code == 201


async def test_update_and_deactivate(client: AsyncClient, admin_headers) -> None:
    created = (await client.post("/api/v1/fee-types", json={"code": "LUNCH", "name": "Lunch"}, headers=admin_headers)).json()
    response = await client.patch(
        f"/api/v1/fee-types/{created['id']}",
        json={"name": "Lunch Programme", "is_active": False},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Lunch Programme"
    assert response.json()["is_active"] is False

    response = await client.get("/api/v1/fee-types", params={"is_active": True}, headers=admin_headers)
    assert response.json() == []


async def test_delete_unused_and_in_use(client: AsyncClient, school, admin_headers, make_structure) -> None:
    created = (await client.post("/api/v1/fee-types", json={"code": "SPARE", "name": "Spare"}, headers=admin_headers)).json()
    assert (await client.delete(f"/api/v1/fee-types/{created['id']}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/v1/fee-types/{created['id']}", headers=admin_headers)).status_code == 404

    structure = await make_structure(school, admin_headers)
    fee_type_id = structure["items"][0]["fee_type_id"]
    response = await client.delete(f"/api/v1/fee-types/{fee_type_id}", headers=admin_headers)
    assert response.status_code == 400
