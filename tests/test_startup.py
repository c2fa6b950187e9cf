import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

import main
from database import ensure_indexes


def test_startup_without_seed_flag(mongo_db, monkeypatch):
    monkeypatch.delenv("SEED_DEMO_DATA", raising=False)
    with TestClient(main.app) as client:
        assert client.get("/api/products").json()["total"] == 0
    assert mongo_db["product"].count_documents({}) == 0


def test_startup_seeds_when_flag_set(mongo_db, monkeypatch):
    monkeypatch.setenv("SEED_DEMO_DATA", "1")
    with TestClient(main.app) as client:
        assert client.get("/api/products").json()["total"] == 5
        assert client.get("/api/categories").json() == ["beauty", "fragrances", "furniture", "groceries"]


def test_startup_creates_indexes(mongo_db, monkeypatch):
    monkeypatch.delenv("SEED_DEMO_DATA", raising=False)
    with TestClient(main.app):
        pass
    user_indexes = mongo_db["user"].index_information()
    assert user_indexes["email_1"]["unique"] is True
    token_indexes = mongo_db["revoked_token"].index_information()
    assert token_indexes["expires_at_1"]["expireAfterSeconds"] == 0


def test_email_index_rejects_duplicates(mongo_db):
    ensure_indexes(mongo_db)
    mongo_db["user"].insert_one({"name": "Ada", "email": "ada@example.com", "password_hash": "x"})
    with pytest.raises(DuplicateKeyError):
        mongo_db["user"].insert_one({"name": "Ada 2", "email": "ada@example.com", "password_hash": "y"})


def test_register_after_indexes(client, mongo_db):
    ensure_indexes(mongo_db)
    payload = {"name": "Ada", "email": "ada@example.com", "password": "secret-pass"}
    assert client.post("/api/auth/register", json=payload).status_code == 200
    res = client.post("/api/auth/register", json=payload)
    assert res.status_code == 400
    assert res.json() == {"detail": "Email already registered"}
