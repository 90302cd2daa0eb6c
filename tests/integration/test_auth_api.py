"""
Integration tests for registration, login, logout and profile.
"""

from datetime import timedelta

from app.security_utils import create_jwt_token


def register(client, name="Alice Smith", email="alice@example.com", password="Password1"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def test_register_returns_token_and_safe_user(client):
    response = register(client, email="Alice@Example.com")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "alice@example.com"
    assert "password" not in str(body["user"]).lower()
    assert response.cookies.get("token")


def test_register_duplicate_email(client):
    register(client)

    response = register(client, name="Someone Else")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "USER_EXISTS"


def test_register_weak_password(client):
    response = register(client, password="weakpass")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "password" in error["details"]


def test_register_invalid_fields(client):
    response = register(client, name="A", email="not-an-email")

    assert response.status_code == 400
    details = response.json()["error"]["details"]
    assert "name" in details
    assert "email" in details


def test_login_and_profile(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Password1"})
    assert response.status_code == 200
    token = response.json()["token"]

    profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["user"]["name"] == "Alice Smith"


def test_profile_via_cookie(client):
    register(client)
    client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Password1"})

    response = client.get("/api/auth/profile")

    assert response.status_code == 200


def test_logout_clears_cookie(client):
    register(client)

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert client.get("/api/auth/profile").status_code == 401


def test_login_wrong_password(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong1234"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Password1"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_expired_token_rejected(client, make_user):
    user = make_user()
    token = create_jwt_token(user.id, expires_delta=timedelta(seconds=-1))

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token has expired"


def test_token_for_deleted_user_rejected(client):
    token = create_jwt_token("00000000-0000-4000-8000-000000000000")

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_login_is_rate_limited_per_email(client):
    register(client)
    credentials = {"email": "alice@example.com", "password": "Wrong1234"}

    statuses = [client.post("/api/auth/login", json=credentials).status_code for _ in range(6)]

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429
    limited = client.post("/api/auth/login", json=credentials)
    assert limited.json()["error"]["code"] == "RATE_LIMIT_ERROR"
    assert int(limited.headers["Retry-After"]) > 0

    # A different email has its own budget
    other = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "Password1"})
    assert other.status_code == 401
