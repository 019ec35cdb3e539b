from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lineup.core.config import settings
from lineup.db.deps import get_db
from lineup.db.models.task import Task
from lineup.db.models.user import User
from lineup.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _signup(client: TestClient, email: str = "ada@example.com", password: str = "hunter22"):
    return client.post("/auth/signup", json={"email": email, "password": password})


def test_signup_sets_cookie_and_me_returns_user(client):
    test_client, _ = client

    response = _signup(test_client, email="  Ada@Example.COM ")

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "user"
    assert body["token"]
    assert settings.auth_cookie_name in response.cookies

    me = test_client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["user_id"] == body["user"]["user_id"]


def test_me_without_session_returns_null_user(client):
    test_client, _ = client

    response = test_client.get("/auth/me")

    assert response.status_code == 401
    assert response.json() == {"user": None}


def test_logout_clears_session(client):
    test_client, _ = client
    _signup(test_client)

    assert test_client.post("/auth/logout").json() == {"ok": True}
    assert test_client.get("/auth/me").status_code == 401


def test_signup_rejects_duplicate_email(client):
    test_client, _ = client
    _signup(test_client)

    response = _signup(test_client, email="ADA@example.com")

    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"email": "not-an-email", "password": "hunter22"}, "Invalid email"),
        ({"email": "ada@example.com", "password": "123"}, "Password must be 6+ characters"),
        ({"email": "ada@example.com", "password": "x" * 201}, "Password too long"),
    ],
)
def test_signup_validation(client, payload, message):
    test_client, _ = client

    response = test_client.post("/auth/signup", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == message


def test_login_checks_password(client):
    test_client, _ = client
    _signup(test_client)
    test_client.cookies.clear()

    bad = test_client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong-one"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Invalid credentials"

    unknown = test_client.post("/auth/login", json={"email": "bob@example.com", "password": "hunter22"})
    assert unknown.status_code == 401

    good = test_client.post("/auth/login", json={"email": "ADA@example.com", "password": "hunter22"})
    assert good.status_code == 200
    assert test_client.get("/auth/me").status_code == 200


def test_bearer_token_is_accepted(client):
    test_client, _ = client
    token = _signup(test_client).json()["token"]
    test_client.cookies.clear()

    response = test_client.get("/tasks/count", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"count": 0}


def test_tampered_token_is_rejected(client):
    test_client, _ = client
    token = _signup(test_client).json()["token"]
    test_client.cookies.clear()

    response = test_client.get("/tasks/count", headers={"Authorization": f"Bearer {token[:-2]}xx"})

    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_profile_read_and_update(client):
    test_client, _ = client
    _signup(test_client)

    profile = test_client.get("/profile")
    assert profile.status_code == 200
    assert profile.json()["profile"]["name"] is None

    updated = test_client.patch(
        "/profile",
        json={"name": "  Ada Lovelace  ", "avatar_url": "https://example.com/ada.png"},
    )
    assert updated.status_code == 200
    assert updated.json()["profile"]["name"] == "Ada Lovelace"
    assert updated.json()["profile"]["avatar_url"] == "https://example.com/ada.png"

    cleared = test_client.patch("/profile", json={"name": ""})
    assert cleared.json()["profile"]["name"] is None
    assert cleared.json()["profile"]["avatar_url"] is None


def test_profile_clips_long_name(client):
    test_client, _ = client
    _signup(test_client)

    response = test_client.patch("/profile", json={"name": "n" * 80})

    assert response.json()["profile"]["name"] == "n" * 60


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"avatar_url": "ftp://example.com/a.png"}, "avatar_url must start with http(s)://"),
        ({"avatar_data_url": "data:text/plain;base64,AAAA"}, "avatar_data_url must be a data:image/* url"),
        ({"avatar_data_url": "data:image/png;base64," + "A" * 400_000}, "Avatar image too large"),
    ],
)
def test_profile_rejects_bad_avatars(client, payload, message):
    test_client, _ = client
    _signup(test_client)

    response = test_client.patch("/profile", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == message


def test_profile_requires_session(client):
    test_client, _ = client

    assert test_client.get("/profile").status_code == 401
