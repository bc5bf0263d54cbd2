import os
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault(
    "UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "bookrental-test-uploads")
)

from bookrental.main import app, get_db  # noqa: E402
from bookrental.migrations import run_migrations  # noqa: E402
from bookrental.uploads import get_upload_dir  # noqa: E402


@pytest.fixture(scope="function")
async def test_db():
    client = AsyncMongoMockClient()
    db = client[f"book_rental_test_{uuid.uuid4().hex}"]
    await run_migrations(db)
    return db


@pytest.fixture(scope="function")
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture(scope="function")
def client(test_db, upload_dir):
    app.state.testing = True
    app.dependency_overrides[get_db] = lambda: test_db
    app.dependency_overrides[get_upload_dir] = lambda: str(upload_dir)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.testing = False


def login(client, username, password):
    client.post("/register", json={"username": username, "password": password})
    response = client.post("/login", json={"username": username, "password": password})
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture(scope="function")
def alice_headers(client):
    return login(client, "alice", "pw1")


@pytest.fixture(scope="function")
def bob_headers(client):
    return login(client, "bob", "pw2")


def add_book(client, headers, title="Dune", author="Frank Herbert"):
    response = client.post(
        "/books",
        headers=headers,
        data={"title": title, "author": author},
        files={"cover": ("cover.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
    )
    assert response.status_code == 200
    return response.json()
