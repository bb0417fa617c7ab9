from httpx import AsyncClient


async def test_create_defaults_is_idempotent(client: AsyncClient, admin_headers) -> None:
    response = await client.post("/api/v1/aggregation/configs/defaults", headers=admin_headers)
    assert response.status_code == 201
    created = {c["assessment_type"]: c for c in response.json()}
    assert set(created) == {"OPENER", "CAT", "ASSIGNMENT"}
    assert created["CAT"]["strategy"] == "BEST_N"
    assert created["CAT"]["n_value"] == 3
    assert created["OPENER"]["strategy"] == "DROP_LOWEST_N"

    response = await client.post("/api/v1/aggregation/configs/defaults", headers=admin_headers)
    assert response.json() == []
    listed = await client.get("/api/v1/aggregation/configs", headers=admin_headers)
    assert len(listed.json()) == 3


async def test_n_strategy_requires_n_value(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/aggregation/configs",
        json={"assessment_type": "CAT", "strategy": "BEST_N"},
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_duplicate_key_conflicts(client: AsyncClient, admin_headers) -> None:
    payload = {"assessment_type": "CAT", "grade": "GRADE_4", "strategy": "MEDIAN"}
    assert (await client.post("/api/v1/aggregation/configs", json=payload, headers=admin_headers)).status_code == 201
    response = await client.post("/api/v1/aggregation/configs", json=payload, headers=admin_headers)
    assert response.status_code == 409

    # The all-NULL school default is a key like any other
    assert (await client.post("/api/v1/aggregation/configs", json={}, headers=admin_headers)).status_code == 201
    assert (await client.post("/api/v1/aggregation/configs", json={}, headers=admin_headers)).status_code == 409


async def test_resolve_follows_precedence(client: AsyncClient, admin_headers) -> None:
    type_only = (
        await client.post(
            "/api/v1/aggregation/configs",
            json={"assessment_type": "CAT", "strategy": "BEST_N", "n_value": 3},
            headers=admin_headers,
        )
    ).json()
    specific = (
        await client.post(
            "/api/v1/aggregation/configs",
            json={"assessment_type": "CAT", "grade": "GRADE_4", "learning_area": "MATH", "strategy": "MEDIAN"},
            headers=admin_headers,
        )
    ).json()

    response = await client.get(
        "/api/v1/aggregation/configs/resolve",
        params={"assessment_type": "CAT", "grade": "GRADE_4", "learning_area": "MATH"},
        headers=admin_headers,
    )
    assert response.json()["config_id"] == specific["id"]

    response = await client.get(
        "/api/v1/aggregation/configs/resolve",
        params={"assessment_type": "CAT", "grade": "GRADE_5"},
        headers=admin_headers,
    )
    assert response.json()["config_id"] == type_only["id"]

    response = await client.get(
        "/api/v1/aggregation/configs/resolve", params={"assessment_type": "OPENER"}, headers=admin_headers
    )
    assert response.json() == {"config_id": None, "strategy": "SIMPLE_AVERAGE", "n_value": None, "weight": 1.0}


async def test_update_and_delete_config(client: AsyncClient, admin_headers) -> None:
    config = (
        await client.post(
            "/api/v1/aggregation/configs",
            json={"assessment_type": "OPENER", "strategy": "DROP_LOWEST_N", "n_value": 2},
            headers=admin_headers,
        )
    ).json()

    response = await client.put(
        f"/api/v1/aggregation/configs/{config['id']}", json={"n_value": 0}, headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/aggregation/configs/{config['id']}",
        json={"strategy": "SIMPLE_AVERAGE", "n_value": None, "weight": 0.4},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["strategy"] == "SIMPLE_AVERAGE"
    assert response.json()["n_value"] is None
    assert response.json()["weight"] == 0.4

    assert (await client.delete(f"/api/v1/aggregation/configs/{config['id']}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/v1/aggregation/configs/{config['id']}", headers=admin_headers)).status_code == 404


async def test_compute_uses_effective_config(client: AsyncClient, admin_headers) -> None:
    await client.post("/api/v1/aggregation/configs/defaults", headers=admin_headers)

    response = await client.post(
        "/api/v1/aggregation/compute",
        json={"scores": [80, 70, 90, 40], "assessment_type": "CAT"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "BEST_N"
    assert body["score"] == 80.0
    assert body["score_count"] == 4
    assert body["config_id"] is not None
    assert body["matched"] is None


async def test_compute_with_explicit_strategy_and_grading(client: AsyncClient, admin_headers) -> None:
    systems = (await client.get("/api/v1/grading/systems", params={"type": "CBC"}, headers=admin_headers)).json()
    response = await client.post(
        "/api/v1/aggregation/compute",
        json={
            "scores": [80, 70, 90],
            "strategy": "DROP_LOWEST_N",
            "n_value": 1,
            "grading_system_id": systems[0]["id"],
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["score"] == 85.0
    assert body["config_id"] is None
    assert body["matched"] is True
    assert body["range"]["rubric_rating"] == "EE2"


async def test_compute_empty_scores(client: AsyncClient, admin_headers) -> None:
    response = await client.post("/api/v1/aggregation/compute", json={"scores": []}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["score"] == 0.0


async def test_configs_are_per_school(client: AsyncClient, admin_headers, other_admin, auth_headers) -> None:
    config = (
        await client.post("/api/v1/aggregation/configs", json={"strategy": "MEDIAN"}, headers=admin_headers)
    ).json()
    other = auth_headers(other_admin)
    assert (await client.get(f"/api/v1/aggregation/configs/{config['id']}", headers=other)).status_code == 403
    assert (await client.get("/api/v1/aggregation/configs", headers=other)).json() == []
    response = await client.get("/api/v1/aggregation/configs/resolve", headers=other)
    assert response.json()["config_id"] is None
