from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from stepwright.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from stepwright.db.deps import get_db
from stepwright.main import app


# Tokens are issued by the identity service; mint them the same way here
def create_access_token(email, expires_minutes=ACCESS_TOKEN_EXPIRE_MINUTES):
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes)
    return jwt.encode({"sub": email, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture()
def anonymous_client(db):
    # Real token checks: only the session is swapped
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_valid_token(anonymous_client, user):
    token = create_access_token(user.email)
    res = anonymous_client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json()["email"] == user.email


def test_missing_token(anonymous_client):
    assert anonymous_client.get("/projects/").status_code == 401


def test_garbage_token(anonymous_client):
    res = anonymous_client.get("/projects/", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token"


def test_expired_token(anonymous_client, user):
    token = create_access_token(user.email, expires_minutes=-5)
    res = anonymous_client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_unknown_user(anonymous_client, db):
    token = create_access_token("ghost@example.com")
    res = anonymous_client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["detail"] == "User not found"
