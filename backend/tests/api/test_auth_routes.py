"""Auth Routes — register, login, me, logout, change-password and rate limits."""

from cctv_api.services.auth_service import AUTH_COOKIE_NAME
from conftest import USER_EMAIL, USER_PASSWORD


async def test_register_sets_cookie(client, registration_headers):
    response = await client.post(
        "/auth/register",
        json={"email": " New.User@Example.com ", "password": "secret123"},
        headers=registration_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["data"]["email"] == "new.user@example.com"
    assert body["data"]["roles"] == []
    assert AUTH_COOKIE_NAME in response.cookies


async def test_register_requires_registration_token(client, general_headers):
    response = await client.post(
        "/auth/register",
        json={"email": "a@example.com", "password": "secret123"},
        headers=general_headers,
    )
    assert response.status_code == 403


async def test_register_duplicate_email(client, registration_headers, user):
    response = await client.post(
        "/auth/register",
        json={"email": USER_EMAIL, "password": "secret123"},
        headers=registration_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "EMAIL_ALREADY_EXISTS"


async def test_register_unknown_role(client, registration_headers):
    response = await client.post(
        "/auth/register",
        json={"email": "a@example.com", "password": "secret123", "roleId": 7},
        headers=registration_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Role not found"


async def test_register_short_password_rejected(client, registration_headers):
    response = await client.post(
        "/auth/register",
        json={"email": "a@example.com", "password": "123"},
        headers=registration_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


async def test_register_rate_limited_after_three_attempts(client, registration_headers):
    for i in range(3):
        await client.post(
            "/auth/register",
            json={"email": f"user{i}@example.com", "password": "secret123"},
            headers=registration_headers,
        )

    response = await client.post(
        "/auth/register",
        json={"email": "user9@example.com", "password": "secret123"},
        headers=registration_headers,
    )

    assert response.status_code == 429
    body = response.json()
    assert body["code"] == "RATE_LIMITED"
    assert 0 < body["retryAfter"] <= 60


async def test_login_success(client, user):
    response = await client.post(
        "/auth/login", json={"email": USER_EMAIL, "password": USER_PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"
    assert response.json()["data"]["id"] == user.id
    assert AUTH_COOKIE_NAME in response.cookies


async def test_login_wrong_password_and_unknown_email_look_alike(client, user):
    wrong = await client.post(
        "/auth/login", json={"email": USER_EMAIL, "password": "wrong-pass"},
    )
    unknown = await client.post(
        "/auth/login", json={"email": "nobody@example.com", "password": USER_PASSWORD},
    )
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"


async def test_me_without_cookie_returns_null(client):
    response = await client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["data"] is None


async def test_me_with_cookie(auth_client, user):
    response = await auth_client.get("/auth/me")
    assert response.json()["data"]["email"] == USER_EMAIL


async def test_invalid_cookie_is_forbidden(client):
    client.cookies.set(AUTH_COOKIE_NAME, "garbage")
    response = await client.post("/auth/logout")
    assert response.status_code == 403
    assert response.json()["message"] == "Invalid token"


async def test_logout(auth_client):
    response = await auth_client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"


async def test_change_password(auth_client):
    response = await auth_client.put(
        "/auth/change-password",
        json={"currentPassword": USER_PASSWORD, "newPassword": "another456"},
    )
    assert response.status_code == 200

    login = await auth_client.post(
        "/auth/login", json={"email": USER_EMAIL, "password": "another456"},
    )
    assert login.status_code == 200


async def test_change_password_wrong_current(auth_client):
    response = await auth_client.put(
        "/auth/change-password",
        json={"currentPassword": "not-mine", "newPassword": "another456"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"
