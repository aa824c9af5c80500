"""
Tests for the public and self-service HTTP endpoints.

Every response, success or error, uses the {"code", "message", "data"}
envelope: code 0 on success, the HTTP status otherwise.
"""

from datetime import datetime, timedelta

from conftest import TEST_PASSWORD, TEST_SECRET, register_user
from user_service.security import TokenIssuer


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_error(response, status_code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["code"] == status_code
    assert body["message"]
    return body


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["code"] == 0
        assert body["data"]["status"] == "ok"


class TestRegister:
    """Tests for POST /users/register."""

    async def test_register_success(self, client):
        response = await client.post(
            "/users/register",
            json={
                "username": "alice",
                "email": "  Alice@Example.COM ",
                "password": TEST_PASSWORD,
                "nickname": "Al",
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["code"] == 0
        assert body["message"] == "success"

        user = body["data"]
        assert user["username"] == "alice"
        assert user["email"] == "alice@example.com"
        assert user["nickname"] == "Al"
        assert user["status"] == 1
        assert user["role"] == "user"
        assert user["uuid"]
        assert "password" not in user
        assert "password_hash" not in user

    async def test_duplicate_username(self, client):
        await register_user(client, "alice")
        response = await client.post(
            "/users/register",
            json={"username": "alice", "email": "other@example.com", "password": TEST_PASSWORD},
        )
        assert_error(response, 409)

    async def test_duplicate_email(self, client):
        await register_user(client, "alice")
        response = await client.post(
            "/users/register",
            json={"username": "alice2", "email": "ALICE@example.com", "password": TEST_PASSWORD},
        )
        assert_error(response, 409)

    async def test_weak_password(self, client):
        response = await client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password"},
        )
        body = assert_error(response, 400)
        assert "weak" in body["message"]

    async def test_short_password(self, client):
        response = await client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "Ab1"},
        )
        body = assert_error(response, 400)
        assert "at least 8" in body["message"]

    async def test_invalid_email(self, client):
        response = await client.post(
            "/users/register",
            json={"username": "alice", "email": "not-an-email", "password": TEST_PASSWORD},
        )
        body = assert_error(response, 400)
        assert body["message"] == "invalid email format"

    async def test_missing_fields(self, client):
        response = await client.post("/users/register", json={"username": "alice"})
        body = assert_error(response, 400)
        locations = [tuple(err["loc"]) for err in body["data"]["errors"]]
        assert ("body", "email") in locations
        assert ("body", "password") in locations

    async def test_username_too_short(self, client):
        response = await client.post(
            "/users/register",
            json={"username": "al", "email": "al@example.com", "password": TEST_PASSWORD},
        )
        assert_error(response, 400)


class TestLogin:
    """Tests for POST /users/login."""

    async def test_login_success(self, client):
        created = await register_user(client, "alice")
        response = await client.post(
            "/users/login", json={"username": "alice", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert isinstance(data["expires_at"], int)
        assert data["user"]["id"] == created["id"]

        claims = TokenIssuer(secret=TEST_SECRET).verify(data["token"])
        assert claims.user_id == created["id"]

    async def test_wrong_password_and_unknown_user_are_identical(self, client):
        await register_user(client, "alice")
        wrong = await client.post(
            "/users/login", json={"username": "alice", "password": "WrongPass123"}
        )
        unknown = await client.post(
            "/users/login", json={"username": "nobody", "password": TEST_PASSWORD}
        )
        assert_error(wrong, 401)
        assert_error(unknown, 401)
        assert wrong.json() == unknown.json()


class TestAuthentication:
    """Requests to authenticated endpoints without a usable token."""

    async def test_no_header(self, client):
        response = await client.get("/users/me")
        assert_error(response, 401)
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_wrong_scheme(self, client, member):
        response = await client.get(
            "/users/me", headers={"Authorization": f"Token {member.token}"}
        )
        assert_error(response, 401)

    async def test_garbage_token(self, client):
        response = await client.get(
            "/users/me", headers={"Authorization": "Bearer totally.fake.token"}
        )
        assert_error(response, 401)

    async def test_expired_token(self, client, member):
        token, _ = TokenIssuer(secret=TEST_SECRET).issue(
            member.id, member.username, "user", expires_delta=timedelta(seconds=-10)
        )
        response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        body = assert_error(response, 401)
        assert "expired" in body["message"]

    async def test_forged_token(self, client, member):
        token, _ = TokenIssuer(secret="attacker-secret").issue(member.id, member.username, "admin")
        response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert_error(response, 401)


class TestProfile:
    """Tests for GET /users/me, GET /users/{id} and GET /users/uuid/{uuid}."""

    async def test_me(self, client, member):
        response = await client.get("/users/me", headers=member.headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == member.id

    async def test_get_other_user_by_id(self, client, member, second_member):
        response = await client.get(f"/users/{second_member.id}", headers=member.headers)
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "bob"

    async def test_get_by_uuid(self, client, member):
        me = (await client.get("/users/me", headers=member.headers)).json()["data"]
        response = await client.get(f"/users/uuid/{me['uuid']}", headers=member.headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == member.id

    async def test_unknown_id(self, client, member):
        response = await client.get("/users/99999", headers=member.headers)
        assert_error(response, 404)

    async def test_non_numeric_id(self, client, member):
        response = await client.get("/users/abc", headers=member.headers)
        assert_error(response, 400)


class TestUpdateProfile:
    """Tests for PUT /users/{id}."""

    async def test_update_own_profile(self, client, member):
        before = (await client.get("/users/me", headers=member.headers)).json()["data"]

        response = await client.put(
            f"/users/{member.id}",
            json={"nickname": "Alice", "avatar": "https://cdn.example.com/a.png"},
            headers=member.headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["nickname"] == "Alice"
        assert data["avatar"] == "https://cdn.example.com/a.png"
        assert parse_timestamp(data["updated_at"]) > parse_timestamp(before["updated_at"])

    async def test_partial_update(self, client, member):
        await client.put(f"/users/{member.id}", json={"nickname": "Alice"}, headers=member.headers)
        response = await client.put(
            f"/users/{member.id}", json={"avatar": "a.png"}, headers=member.headers
        )
        data = response.json()["data"]
        assert data["nickname"] == "Alice"
        assert data["avatar"] == "a.png"

    async def test_update_someone_else(self, client, member, second_member):
        response = await client.put(
            f"/users/{second_member.id}", json={"nickname": "pwned"}, headers=member.headers
        )
        assert_error(response, 403)

        bob = (await client.get("/users/me", headers=second_member.headers)).json()["data"]
        assert bob["nickname"] is None


class TestChangePassword:
    """Tests for PUT /users/{id}/change-password."""

    async def test_change_password(self, client, member):
        response = await client.put(
            f"/users/{member.id}/change-password",
            json={"old_password": TEST_PASSWORD, "new_password": "BrandNew456"},
            headers=member.headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["code"] == 0
        assert body["data"] is None

        old = await client.post(
            "/users/login", json={"username": member.username, "password": TEST_PASSWORD}
        )
        assert_error(old, 401)
        new = await client.post(
            "/users/login", json={"username": member.username, "password": "BrandNew456"}
        )
        assert new.status_code == 200

    async def test_wrong_old_password(self, client, member):
        response = await client.put(
            f"/users/{member.id}/change-password",
            json={"old_password": "WrongPass123", "new_password": "BrandNew456"},
            headers=member.headers,
        )
        assert_error(response, 401)

    async def test_weak_new_password(self, client, member):
        response = await client.put(
            f"/users/{member.id}/change-password",
            json={"old_password": TEST_PASSWORD, "new_password": "weakpassword"},
            headers=member.headers,
        )
        assert_error(response, 400)

    async def test_someone_elses_password(self, client, member, second_member):
        response = await client.put(
            f"/users/{second_member.id}/change-password",
            json={"old_password": TEST_PASSWORD, "new_password": "BrandNew456"},
            headers=member.headers,
        )
        assert_error(response, 403)
