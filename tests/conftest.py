import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import hash_password
from database import get_db
from main import app, limiter
from schemas import User
from uploads import get_uploader


class FakeUploader:
    def __init__(self):
        self.uploaded = []

    def upload(self, file):
        url = f"https://img.example.com/{len(self.uploaded)}-{file.filename}"
        self.uploaded.append(url)
        return url

    def upload_many(self, files):
        return [self.upload(f) for f in files]


@pytest.fixture
def db():
    return mongomock.MongoClient()["cutmatch_test"]


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def client(db, uploader):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_uploader] = lambda: uploader
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(username="alice", email=None, password="secret123"):
        email = email or f"{username}@example.com"
        resp = client.post("/api/users/register", json={"username": username, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        data["headers"] = {"Authorization": f"Bearer {data['token']}"}
        return data
    return _register


@pytest.fixture
def admin(client, db):
    doc = User(username="admin", email="admin@example.com",
               password_hash=hash_password("admin123"), role="admin").to_document()
    db["user"].insert_one(doc)
    resp = client.post("/api/users/login", json={"email": "admin@example.com", "password": "admin123"})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data
