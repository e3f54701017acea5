from datetime import datetime, timedelta, timezone

from app.auth import passwords
from app.core.config import settings
from app.models.session import UserSession
from app.models.user import User
from app.services import store


def test_register_logs_in_and_hides_secrets(client, register):
    user = register(client, "alice", "a@x.com")

    assert user["username"] == "alice"
    assert user["email"] == "a@x.com"
    assert user["isEmailVerified"] is False
    assert "password" not in user
    assert "verificationToken" not in user
    assert settings.SESSION_COOKIE_NAME in client.cookies

    me = client.get("/api/user")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_register_username_conflict_checked_first(client, register, make_client, db):
    register(client, "alice", "a@x.com")

    other = make_client()
    res = other.post("/api/register", json={"username": "alice", "email": "a@x.com", "password": "secretpw12"})
    assert res.status_code == 400
    assert res.json() == {"message": "Username already exists", "field": "username"}

    res = other.post("/api/register", json={"username": "alice2", "email": "A@X.com", "password": "secretpw12"})
    assert res.status_code == 400
    assert res.json() == {"message": "Email already registered", "field": "email"}

    # Neither rejected attempt left a row behind
    db.expire_all()
    assert db.query(User).count() == 1


def test_register_validation_errors(client):
    res = client.post("/api/register", json={"username": "al", "email": "a@x.com", "password": "secretpw12"})
    assert res.status_code == 400
    assert res.json()["field"] == "username"

    res = client.post("/api/register", json={"username": "alice", "email": "nope", "password": "secretpw12"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid email address", "field": "email"}

    res = client.post("/api/register", json={"username": "alice", "email": "a@x.com", "password": "short"})
    assert res.status_code == 400
    assert res.json()["field"] == "password"


def test_login_by_email_or_username(client, register, make_client):
    register(client, "alice", "a@x.com")

    for identifier in ("a@x.com", "alice"):
        c = make_client()
        res = c.post("/api/login", json={"username": identifier, "password": "secretpw12"})
        assert res.status_code == 200
        assert res.json()["username"] == "alice"
        assert c.get("/api/user").status_code == 200

    c = make_client()
    res = c.post("/api/login", json={"email": "a@x.com", "password": "secretpw12"})
    assert res.status_code == 200


def test_login_failures_share_one_message(client, register, make_client):
    register(client, "alice", "a@x.com")
    c = make_client()

    for body in (
        {"username": "alice", "password": "wrongpass"},
        {"username": "nobody", "password": "secretpw12"},
    ):
        res = c.post("/api/login", json=body)
        assert res.status_code == 401
        assert res.json() == {"message": "Invalid email or password"}


def test_logout_is_idempotent(client, register, db):
    register(client)
    assert db.query(UserSession).count() == 1

    res = client.post("/api/logout")
    assert res.status_code == 200
    assert res.json() == {"message": "Logged out"}
    assert client.get("/api/user").status_code == 401
    assert db.query(UserSession).count() == 0

    assert client.post("/api/logout").status_code == 200


def test_current_user_requires_session(client):
    res = client.get("/api/user")
    assert res.status_code == 401
    assert res.json() == {"message": "Unauthorized"}


def test_tampered_cookie_is_anonymous(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-jwt")
    assert client.get("/api/user").status_code == 401


def test_verify_email(client, register, db):
    user = register(client)
    token = store.get_user(db, user["id"]).verification_token
    assert token and len(token) == 64

    res = client.post("/api/verify-email", json={"token": token})
    assert res.status_code == 200
    assert res.json() == {"message": "Email verified successfully!"}

    db.expire_all()
    row = store.get_user(db, user["id"])
    assert row.is_email_verified is True
    assert row.verification_token is None
    assert client.get("/api/user").json()["isEmailVerified"] is True

    # Token is single use
    res = client.post("/api/verify-email", json={"token": token})
    assert res.status_code == 404
    assert res.json() == {"message": "Invalid or expired verification token"}


def test_register_trims_before_length_check(client, db):
    res = client.post("/api/register", json={"username": "  ab ", "email": "a@x.com", "password": "secretpw12"})
    assert res.status_code == 400
    assert res.json()["field"] == "username"

    res = client.post("/api/register", json={"username": " alice ", "email": " A@X.com ", "password": "secretpw12"})
    assert res.status_code == 201
    assert res.json()["username"] == "alice"
    assert res.json()["email"] == "a@x.com"
    assert db.query(User).count() == 1


def test_login_failures_cost_one_derivation(client, register, make_client, monkeypatch):
    register(client, "alice", "a@x.com")

    calls = []
    derive = passwords._derive

    def counting_derive(password, salt):
        calls.append(salt)
        return derive(password, salt)

    monkeypatch.setattr(passwords, "_derive", counting_derive)
    c = make_client()

    for body in (
        {"username": "nobody", "password": "secretpw12"},
        {"username": "alice", "password": "wrongpass"},
    ):
        calls.clear()
        res = c.post("/api/login", json=body)
        assert res.status_code == 401
        assert len(calls) == 1


def test_new_session_purges_expired_rows(client, register, make_client, db):
    user = register(client)
    stale = datetime.now(timezone.utc) - timedelta(days=1)
    db.add(UserSession(sid="stale-sid", user_id=user["id"], expires_at=stale))
    db.commit()

    res = make_client().post("/api/login", json={"username": "alice", "password": "secretpw12"})
    assert res.status_code == 200

    db.expire_all()
    assert db.get(UserSession, "stale-sid") is None
    assert db.query(UserSession).count() == 2
