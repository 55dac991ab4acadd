from uuid import uuid4

CINEMA_PAYLOAD = {
    "name": "Cine Centro",
    "address": "Rua Augusta, 1000",
    "city": "Sao Paulo",
    "state": "SP",
    "capacity": 250,
}


async def test_create_cinema(client, auth_headers):
    res = await client.post("/v1/cinemas", json=CINEMA_PAYLOAD, headers=auth_headers)
    assert res.status_code == 201
    body = res.json()
    assert body["name"] == "Cine Centro"
    assert body["capacity"] == 250
    assert "id" in body


async def test_create_cinema_requires_authentication(client):
    res = await client.post("/v1/cinemas", json=CINEMA_PAYLOAD)
    assert res.status_code == 401


async def test_create_cinema_invalid_capacity(client, auth_headers):
    res = await client.post("/v1/cinemas", json={**CINEMA_PAYLOAD, "capacity": 0}, headers=auth_headers)
    assert res.status_code == 422
    assert res.json()["errors"][0]["field"] == "capacity"


async def test_list_cinemas_only_returns_own(client, auth_headers, other_auth_headers):
    for name in ("Alpha", "Bravo", "Charlie"):
        await client.post("/v1/cinemas", json={**CINEMA_PAYLOAD, "name": name}, headers=auth_headers)
    await client.post("/v1/cinemas", json={**CINEMA_PAYLOAD, "name": "Foreign"}, headers=other_auth_headers)

    res = await client.get("/v1/cinemas", params={"page": 1, "limit": 2, "sort": "name"}, headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"totalItems": 3, "totalPages": 2, "currentPage": 1, "pageSize": 2}
    assert [c["name"] for c in body["items"]] == ["Alpha", "Bravo"]

    res = await client.get("/v1/cinemas", params={"page": 2, "limit": 2, "sort": "name"}, headers=auth_headers)
    assert [c["name"] for c in res.json()["items"]] == ["Charlie"]


async def test_list_cinemas_rejects_oversized_page(client, auth_headers):
    res = await client.get("/v1/cinemas", params={"limit": 1000}, headers=auth_headers)
    assert res.status_code == 422


async def test_get_cinema(client, auth_headers):
    created = (await client.post("/v1/cinemas", json=CINEMA_PAYLOAD, headers=auth_headers)).json()

    res = await client.get(f"/v1/cinemas/{created['id']}", headers=auth_headers)
    assert res.status_code == 200
    assert res.json() == created


async def test_get_unknown_cinema(client, auth_headers):
    res = await client.get(f"/v1/cinemas/{uuid4()}", headers=auth_headers)
    assert res.status_code == 404
    assert res.json()["title"] == "Cinema not found"


async def test_get_cinema_of_another_user(client, auth_headers, other_auth_headers):
    created = (await client.post("/v1/cinemas", json=CINEMA_PAYLOAD, headers=other_auth_headers)).json()

    res = await client.get(f"/v1/cinemas/{created['id']}", headers=auth_headers)
    assert res.status_code == 403


async def test_delete_cinema(client, auth_headers, other_auth_headers):
    created = (await client.post("/v1/cinemas", json=CINEMA_PAYLOAD, headers=auth_headers)).json()

    res = await client.delete(f"/v1/cinemas/{created['id']}", headers=other_auth_headers)
    assert res.status_code == 403

    res = await client.delete(f"/v1/cinemas/{created['id']}", headers=auth_headers)
    assert res.status_code == 204

    res = await client.get(f"/v1/cinemas/{created['id']}", headers=auth_headers)
    assert res.status_code == 404
