from bson import ObjectId


def make_service(client, headers, **overrides):
    payload = {"name": "Свадебный букет", "description": "Букет невесты под образ", "category": "bouquets"}
    payload.update(overrides)
    resp = client.post("/api/services", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def test_service_defaults(client, admin_headers):
    service = make_service(client, admin_headers, price="от 5000 руб", features=["Консультация", "Доставка"])
    assert service["is_active"] is True
    assert service["is_popular"] is False
    assert service["sort_order"] == 0
    assert service["features"] == ["Консультация", "Доставка"]
    assert client.get(f"/api/services/{service['id']}").json()["price"] == "от 5000 руб"


def test_services_sorted_by_priority_then_name(client, admin_headers):
    make_service(client, admin_headers, name="Доставка", category="delivery", sort_order=1)
    make_service(client, admin_headers, name="Оформление зала", category="decoration", sort_order=10)
    make_service(client, admin_headers, name="Букеты", sort_order=1)

    names = [s["name"] for s in client.get("/api/services").json()]
    assert names == ["Оформление зала", "Букеты", "Доставка"]


def test_active_services(client, admin_headers):
    make_service(client, admin_headers, name="Консультация", category="consultation")
    make_service(client, admin_headers, name="Уход за растениями", category="maintenance", is_active=False)

    resp = client.get("/api/services/active")
    assert resp.status_code == 200
    assert [s["name"] for s in resp.json()] == ["Консультация"]
    assert len(client.get("/api/services").json()) == 2
    assert [s["name"] for s in client.get("/api/services?category=maintenance").json()] == ["Уход за растениями"]


def test_service_validation(client, admin_headers):
    base = {"name": "X", "description": "Y"}
    assert client.post("/api/services", json={**base, "category": "funeral"}, headers=admin_headers).status_code == 400
    resp = client.post("/api/services", json={**base, "category": "events", "sort_order": -1}, headers=admin_headers)
    assert resp.status_code == 400
    assert client.post("/api/services", json={"name": "X", "category": "events"}, headers=admin_headers).status_code == 400


def test_service_update_and_delete(client, admin_headers):
    service = make_service(client, admin_headers, short_description="Кратко")

    resp = client.patch(
        f"/api/services/{service['id']}",
        json={"is_popular": True, "short_description": None},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["is_popular"] is True
    assert resp.json()["short_description"] is None
    assert resp.json()["name"] == service["name"]

    assert client.put(f"/api/services/{service['id']}", json={"category": None}, headers=admin_headers).status_code == 400
    assert client.patch(f"/api/services/{ObjectId()}", json={"name": "Z"}, headers=admin_headers).status_code == 404

    assert client.delete(f"/api/services/{service['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/services/{service['id']}").status_code == 404


def test_service_writes_need_site_admin(client, manager_headers, site_admin_headers):
    payload = {"name": "Букет", "description": "Описание", "category": "bouquets"}
    assert client.post("/api/services", json=payload).status_code == 401
    assert client.post("/api/services", json=payload, headers=manager_headers).status_code == 403

    service = make_service(client, site_admin_headers)
    assert client.patch(f"/api/services/{service['id']}", json={"name": "Z"}, headers=manager_headers).status_code == 403
    assert client.delete(f"/api/services/{service['id']}", headers=manager_headers).status_code == 403
