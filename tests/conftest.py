import os
import tempfile

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="biolink-uploads-")
os.environ["UPLOAD_BACKEND"] = "local"
os.environ["SMTP_USER"] = ""
os.environ["ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, engine, init_db
from app.main import app


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_client(db):
    """Factory for extra clients, each with its own cookie jar."""
    clients = []

    def _make():
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def register():
    def _register(client, username="alice", email=None, password="secretpw12"):
        res = client.post("/api/register", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })
        assert res.status_code == 201, res.text
        return res.json()

    return _register
