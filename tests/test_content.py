from bson import ObjectId


def make_post(client, headers, **overrides):
    payload = {"title": "Уход за розами", "content": "Меняйте воду каждый день", "category": "Уход"}
    payload.update(overrides)
    resp = client.post("/api/blog-posts", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def make_item(client, headers, **overrides):
    payload = {"title": "Свадебная арка", "category": "wedding", "image_url": "https://example.com/a.jpg"}
    payload.update(overrides)
    resp = client.post("/api/portfolio-items", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json()


# Sections

def test_section_lookup_by_name_and_id(client, admin_headers):
    resp = client.post("/api/sections", json={"name": "hero", "title": "Магия цветов"}, headers=admin_headers)
    assert resp.status_code == 201
    section = resp.json()

    assert client.get("/api/sections/hero").json()["id"] == section["id"]
    assert client.get(f"/api/sections/{section['id']}").json()["name"] == "hero"
    assert client.get("/api/sections/missing").status_code == 404


def test_duplicate_section_name_conflicts(client, admin_headers):
    client.post("/api/sections", json={"name": "about", "title": "О нас"}, headers=admin_headers)
    resp = client.post("/api/sections", json={"name": "about", "title": "Снова"}, headers=admin_headers)
    assert resp.status_code == 409
    assert "already exists" in resp.json()["message"]


def test_section_partial_update(client, admin_headers):
    section = client.post(
        "/api/sections", json={"name": "hero", "title": "Старый", "button_text": "Позвонить"}, headers=admin_headers
    ).json()
    resp = client.patch(f"/api/sections/{section['id']}", json={"title": "Новый"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Новый"
    assert resp.json()["button_text"] == "Позвонить"


# Blog

def test_blog_published_filter(client, admin_headers):
    make_post(client, admin_headers, title="Опубликован", published=True)
    make_post(client, admin_headers, title="Черновик", published=False)

    published = client.get("/api/blog-posts?published=true").json()
    assert [p["title"] for p in published] == ["Опубликован"]
    assert all(p["published"] is True for p in published)

    everything = client.get("/api/blog-posts").json()
    assert {p["title"] for p in everything} == {"Опубликован", "Черновик"}


def test_blog_post_crud(client, admin_headers):
    post = make_post(client, admin_headers)
    assert post["published"] is False
    assert post["created_at"]

    resp = client.put(f"/api/blog-posts/{post['id']}", json={"published": True}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["published"] is True
    assert resp.json()["title"] == post["title"]

    assert client.delete(f"/api/blog-posts/{post['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/blog-posts/{post['id']}").status_code == 404
    assert client.delete(f"/api/blog-posts/{post['id']}", headers=admin_headers).status_code == 404


def test_malformed_id_is_400(client):
    resp = client.get("/api/blog-posts/123")
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid ID"}


# Portfolio

def test_patch_missing_portfolio_item_is_404(client, admin_headers, mongo):
    make_item(client, admin_headers)
    before = list(mongo["portfolioitem"].find())

    resp = client.patch(f"/api/portfolio-items/{ObjectId()}", json={"title": "x"}, headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Portfolio item not found"}
    assert list(mongo["portfolioitem"].find()) == before


def test_toggle_active_is_idempotent(client, admin_headers):
    item = make_item(client, admin_headers)
    for _ in range(2):
        resp = client.patch(f"/api/portfolio-items/{item['id']}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
    assert client.get(f"/api/portfolio-items/{item['id']}").json()["is_active"] is False


def test_portfolio_filters(client, admin_headers):
    make_item(client, admin_headers, title="A", category="wedding")
    make_item(client, admin_headers, title="B", category="corporate")
    make_item(client, admin_headers, title="C", category="corporate", is_active=False)

    assert {i["title"] for i in client.get("/api/portfolio-items?category=corporate").json()} == {"B", "C"}
    assert {i["title"] for i in client.get("/api/portfolio-items?active=true").json()} == {"A", "B"}
    assert len(client.get("/api/portfolio-items").json()) == 3


def test_portfolio_category_is_validated(client, admin_headers):
    resp = client.post(
        "/api/portfolio-items",
        json={"title": "X", "category": "funeral", "image_url": "https://example.com/x.jpg"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_seed_is_idempotent(client, admin_headers):
    first = client.post("/seed", headers=admin_headers).json()["seeded"]
    assert first["section"] == 3
    second = client.post("/seed", headers=admin_headers).json()["seeded"]
    assert second == {"section": 0, "blogpost": 0, "portfolioitem": 0, "loyaltyprogram": 0}
    assert client.get("/api/sections/hero").status_code == 200


def test_delete_section(client, admin_headers):
    section = client.post("/api/sections", json={"name": "promo", "title": "Акция"}, headers=admin_headers).json()

    assert client.delete(f"/api/sections/{section['id']}", headers=admin_headers).status_code == 204
    assert client.get("/api/sections/promo").status_code == 404
    assert client.delete(f"/api/sections/{section['id']}", headers=admin_headers).status_code == 404


def test_explicit_null_clears_optional_field(client, admin_headers):
    section = client.post(
        "/api/sections", json={"name": "hero", "title": "Магия", "button_text": "Позвонить"}, headers=admin_headers
    ).json()
    resp = client.patch(f"/api/sections/{section['id']}", json={"button_text": None}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["button_text"] is None
    assert resp.json()["title"] == "Магия"

    post = make_post(client, admin_headers, image_url="https://example.com/p.jpg")
    resp = client.patch(f"/api/blog-posts/{post['id']}", json={"image_url": None}, headers=admin_headers)
    assert resp.json()["image_url"] is None


def test_explicit_null_on_required_field_is_400(client, admin_headers):
    section = client.post("/api/sections", json={"name": "hero", "title": "Магия"}, headers=admin_headers).json()
    resp = client.patch(f"/api/sections/{section['id']}", json={"title": None}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request data"
    assert client.get("/api/sections/hero").json()["title"] == "Магия"

    post = make_post(client, admin_headers)
    assert client.put(f"/api/blog-posts/{post['id']}", json={"published": None}, headers=admin_headers).status_code == 400

    item = make_item(client, admin_headers)
    resp = client.patch(f"/api/portfolio-items/{item['id']}", json={"image_url": None}, headers=admin_headers)
    assert resp.status_code == 400
