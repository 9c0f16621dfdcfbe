"""Register, login, refresh, logout and session cookies."""

from httpx import AsyncClient

from tests.conftest import TEST_PASSWORD, register


def _set_cookies(response) -> list[str]:
    return response.headers.get_list("set-cookie")


def _cleared(response, name: str) -> bool:
    return any(h.startswith(f"{name}=") and "Max-Age=0" in h for h in _set_cookies(response))


class TestRegister:
    async def test_register_returns_tokens_and_sets_cookies(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "Bob@Example.com",
            "password": TEST_PASSWORD,
            "name": "Bob",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "bob@example.com"
        assert data["user"]["total_xp"] == 0
        assert data["user"]["current_level"] == 1
        cookies = _set_cookies(response)
        assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in cookies)
        assert any(c.startswith("refreshToken=") and "samesite=strict" in c.lower() for c in cookies)

    async def test_duplicate_email(self, client: AsyncClient):
        await register(client)
        response = await client.post("/api/v1/auth/register", json={
            "email": "ALICE@example.com",
            "password": TEST_PASSWORD,
            "name": "Alice Again",
        })
        assert response.status_code == 409

    async def test_weak_password(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "weak@example.com",
            "password": "password",
            "name": "Weak",
        })
        assert response.status_code == 400
        assert "uppercase" in response.json()["detail"]

    async def test_invalid_email_is_validation_error(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "not-an-email",
            "password": TEST_PASSWORD,
            "name": "Nobody",
        })
        assert response.status_code == 400
        data = response.json()
        assert data["detail"] == "Validation error"
        assert data["errors"][0]["field"] == "email"


class TestLogin:
    async def test_login_success(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered_user["user_id"]

    async def test_remember_me_lengthens_access_token(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": TEST_PASSWORD,
            "remember_me": True,
        })
        assert response.json()["expires_in"] == 7 * 24 * 3600

    async def test_wrong_password(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": "WrongPass1",
        })
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={
            "email": "ghost@example.com",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 401

    async def test_lockout_after_repeated_failures(self, client: AsyncClient, registered_user: dict):
        for _ in range(5):
            response = await client.post("/api/v1/auth/login", json={
                "email": registered_user["email"],
                "password": "WrongPass1",
            })
            assert response.status_code == 401
        response = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 429


class TestCurrentUser:
    async def test_me_with_bearer(self, authed_client: AsyncClient, registered_user: dict):
        response = await authed_client.get("/api/v1/auth/me")
        assert response.status_code == 200
        assert response.json()["email"] == registered_user["email"]

    async def test_me_with_cookie(self, client: AsyncClient, registered_user: dict):
        # register() left the session cookies in the client's jar
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 200
        assert response.json()["id"] == registered_user["user_id"]

    async def test_me_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    async def test_refresh_token_not_accepted_as_access(self, client: AsyncClient, registered_user: dict):
        client.cookies.clear()
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {registered_user['refresh_token']}"},
        )
        assert response.status_code == 401


class TestRefresh:
    async def test_refresh_rotates_tokens(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": registered_user["refresh_token"]})
        assert response.status_code == 200
        data = response.json()
        assert data["refresh_token"] != registered_user["refresh_token"]
        assert any(c.startswith("refreshToken=") for c in _set_cookies(response))

    async def test_refresh_from_cookie(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/refresh")
        assert response.status_code == 200

    async def test_missing_refresh_token(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/refresh")
        assert response.status_code == 401
        assert _cleared(response, "accessToken")

    async def test_reuse_revokes_all_sessions(self, client: AsyncClient, registered_user: dict):
        old = registered_user["refresh_token"]
        rotated = await client.post("/api/v1/auth/refresh", json={"refresh_token": old})
        new = rotated.json()["refresh_token"]

        reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": old})
        assert reuse.status_code == 401
        assert _cleared(reuse, "refreshToken")

        after = await client.post("/api/v1/auth/refresh", json={"refresh_token": new})
        assert after.status_code == 401


class TestLogout:
    async def test_logout_clears_cookies_and_revokes(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        assert _cleared(response, "accessToken")
        assert _cleared(response, "refreshToken")

        refresh = await client.post("/api/v1/auth/refresh", json={"refresh_token": registered_user["refresh_token"]})
        assert refresh.status_code == 401

    async def test_logout_without_session(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert _cleared(response, "accessToken")

    async def test_logout_with_garbage_cookie(self, client: AsyncClient):
        client.cookies.set("refreshToken", "garbage")
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert _cleared(response, "refreshToken")

    async def test_logout_succeeds_when_revocation_fails(
        self, client: AsyncClient, registered_user: dict, monkeypatch
    ):
        async def failing_revoke(_db, _jti):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr("goal_assistant.auth.router.revoke_refresh_token", failing_revoke)
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert _cleared(response, "accessToken")
        assert _cleared(response, "refreshToken")


class TestChangePassword:
    async def test_change_password(self, authed_client: AsyncClient, registered_user: dict):
        response = await authed_client.post("/api/v1/auth/change-password", json={
            "current_password": TEST_PASSWORD,
            "new_password": "EvenBetter9",
        })
        assert response.status_code == 200
        assert _cleared(response, "accessToken")

        refresh = await authed_client.post(
            "/api/v1/auth/refresh", json={"refresh_token": registered_user["refresh_token"]}
        )
        assert refresh.status_code == 401

        login = await authed_client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": "EvenBetter9",
        })
        assert login.status_code == 200

    async def test_wrong_current_password(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/auth/change-password", json={
            "current_password": "WrongPass1",
            "new_password": "EvenBetter9",
        })
        assert response.status_code == 401

    async def test_weak_new_password(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/auth/change-password", json={
            "current_password": TEST_PASSWORD,
            "new_password": "short",
        })
        assert response.status_code == 400
