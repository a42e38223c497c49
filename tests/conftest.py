import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from chatbot import flower_chatbot


@pytest.fixture
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["tsvetokraft_test"]
    monkeypatch.setattr(database, "db", mock_db)
    monkeypatch.setattr(main, "db", mock_db)
    database.ensure_indexes()
    main.ensure_root_user()
    return mock_db


@pytest.fixture
def client(mongo, monkeypatch):
    # no AI provider unless a test plugs in a fake one
    monkeypatch.setattr(flower_chatbot, "client", None)
    return TestClient(main.app)


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/auth/login", json={"username": main.ROOT_USERNAME, "password": main.ROOT_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def login_as(client, username, role):
    password = f"{username}-pass-123"
    main.create_document(
        "user", main.User(username=username, password_hash=main.hash_password(password), role=role)
    )
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def manager_headers(client, mongo):
    return login_as(client, "manager1", "manager")


@pytest.fixture
def site_admin_headers(client, mongo):
    return login_as(client, "admin1", "admin")
