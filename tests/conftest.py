import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

import database
import main
from seed import seed_demo_data


class BrokenCollection:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise PyMongoError("connection lost")
        return fail


class FailingWrites:
    """Reads go to the real collection, writes fail."""

    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        if name.startswith(("insert", "update", "delete", "replace")):
            def fail(*args, **kwargs):
                raise PyMongoError("not primary")
            return fail
        return getattr(self._collection, name)


@pytest.fixture
def mongo_db(monkeypatch):
    mock_db = mongomock.MongoClient()["storefront_test"]
    monkeypatch.setattr(database, "db", mock_db)
    monkeypatch.setattr(main, "db", mock_db)
    return mock_db


@pytest.fixture
def seeded_db(mongo_db):
    seed_demo_data(mongo_db)
    return mongo_db


@pytest.fixture
def client(mongo_db):
    return TestClient(main.app)


def register(client, name="Ada", email="ada@example.com", password="secret-pass"):
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()


@pytest.fixture
def auth_headers(client):
    token = register(client)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(client):
    token = register(client, name="Grace", email="grace@example.com")["access_token"]
    return {"Authorization": f"Bearer {token}"}
