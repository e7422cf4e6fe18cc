import uuid

from livestock360.core.security import create_access_token, create_refresh_token


async def test_health_check(api_client):
    """Test health endpoint"""
    response = await api_client.get("http://testserver/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_root_endpoint(api_client):
    """Test root endpoint"""
    response = await api_client.get("http://testserver/")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert "timestamp" in data


async def test_unknown_route_uses_envelope(api_client):
    response = await api_client.get("/v1/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["message"] == "Route not found"


class TestRegister:
    """Test registration endpoint"""

    async def test_register_new_user(self, api_client, test_user_data):
        """Test user registration"""
        response = await api_client.post("/v1/users/register", json=test_user_data)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        assert body["data"]["userName"] == test_user_data["userName"]
        assert body["data"]["email"] == test_user_data["email"]
        assert "password" not in body["data"]
        assert "hashedPassword" not in body["data"]
        uuid.UUID(body["data"]["id"])

    async def test_register_duplicate_email(self, api_client, registered_user):
        """Test registering the same email twice"""
        duplicate = {
            **{k: v for k, v in registered_user.items() if k != "profile"},
            "userName": f"other_{uuid.uuid4().hex[:8]}",
        }
        response = await api_client.post("/v1/users/register", json=duplicate)

        assert response.status_code == 409
        assert response.json()["success"] is False
        assert "already exists" in response.json()["message"]

    async def test_register_duplicate_username(self, api_client, registered_user):
        duplicate = {
            **{k: v for k, v in registered_user.items() if k != "profile"},
            "email": f"other_{uuid.uuid4().hex[:8]}@example.com",
        }
        response = await api_client.post("/v1/users/register", json=duplicate)
        assert response.status_code == 409

    async def test_register_validation_error(self, api_client, test_user_data):
        """Test short password is rejected with a 400 envelope"""
        response = await api_client.post(
            "/v1/users/register",
            json={**test_user_data, "password": "123"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert any(error["field"] == "password" for error in body["errors"])


class TestLogin:
    """Test login endpoint"""

    async def test_login_success(self, api_client, registered_user):
        response = await api_client.post(
            "/v1/users/login",
            json={"email": registered_user["email"].upper(), "password": registered_user["password"]},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert data["user"]["userName"] == registered_user["userName"]

    async def test_login_unknown_email(self, api_client):
        response = await api_client.post(
            "/v1/users/login",
            json={"email": "nobody@example.com", "password": "password123"},
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User does not exist"

    async def test_login_wrong_password(self, api_client, registered_user):
        response = await api_client.post(
            "/v1/users/login",
            json={"email": registered_user["email"], "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Password is incorrect"

    async def test_login_revokes_previous_refresh_token(self, api_client, logged_in_user):
        """A new login starts a fresh session chain"""
        response = await api_client.post(
            "/v1/users/login",
            json={"email": logged_in_user["email"], "password": logged_in_user["password"]},
        )
        assert response.status_code == 200

        response = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["refresh_token"]},
        )
        assert response.status_code == 401


class TestCurrentUser:
    """Test protected user endpoints"""

    async def test_me(self, api_client, logged_in_user):
        response = await api_client.get("/v1/users/me", headers=logged_in_user["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["email"] == logged_in_user["email"]

    async def test_me_without_token(self, api_client):
        response = await api_client.get("/v1/users/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_me_with_invalid_token(self, api_client):
        response = await api_client.get(
            "/v1/users/me",
            headers={"Authorization": "Bearer invalid_token"},
        )
        assert response.status_code == 401

    async def test_refresh_token_is_not_an_access_token(self, api_client, logged_in_user):
        response = await api_client.get(
            "/v1/users/me",
            headers={"Authorization": f"Bearer {logged_in_user['refresh_token']}"},
        )
        assert response.status_code == 401

    async def test_token_for_unknown_user(self, api_client, database):
        token = create_access_token(data={"sub": str(uuid.uuid4())})
        response = await api_client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestRefreshToken:
    """Test refresh token rotation"""

    async def test_refresh_returns_new_pair(self, api_client, logged_in_user):
        response = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["refresh_token"]},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["accessToken"] != logged_in_user["access_token"]
        assert data["refreshToken"] != logged_in_user["refresh_token"]

        me = await api_client.get(
            "/v1/users/me",
            headers={"Authorization": f"Bearer {data['accessToken']}"},
        )
        assert me.status_code == 200

    async def test_refresh_token_is_single_use(self, api_client, logged_in_user):
        first = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["refresh_token"]},
        )
        assert first.status_code == 200

        second = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["refresh_token"]},
        )
        assert second.status_code == 401
        assert second.json()["success"] is False

        # The rotated token keeps working
        third = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": first.json()["data"]["refreshToken"]},
        )
        assert third.status_code == 200

    async def test_refresh_with_garbage(self, api_client, database):
        response = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": "not-a-jwt"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"

    async def test_refresh_with_access_token(self, api_client, logged_in_user):
        response = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["access_token"]},
        )
        assert response.status_code == 401

    async def test_refresh_with_unknown_token(self, api_client, logged_in_user):
        """Signed correctly but never issued by the server"""
        forged = create_refresh_token(data={"sub": logged_in_user["profile"]["id"]})
        response = await api_client.post("/v1/users/refresh-token", json={"refreshToken": forged})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired refresh token"

    async def test_refresh_missing_body(self, api_client, database):
        response = await api_client.post("/v1/users/refresh-token", json={})
        assert response.status_code == 400


class TestLogoutAndSessions:
    """Test logout and session listing"""

    async def test_sessions_lists_active_token(self, api_client, logged_in_user):
        response = await api_client.get("/v1/users/sessions", headers=logged_in_user["headers"])

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert "user_agent" in data["activeSessions"][0]["clientInfo"]

    async def test_logout_revokes_refresh_tokens(self, api_client, logged_in_user):
        response = await api_client.post("/v1/users/logout", headers=logged_in_user["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "User logged out successfully"

        response = await api_client.post(
            "/v1/users/refresh-token",
            json={"refreshToken": logged_in_user["refresh_token"]},
        )
        assert response.status_code == 401

        sessions = await api_client.get("/v1/users/sessions", headers=logged_in_user["headers"])
        assert sessions.json()["data"]["total"] == 0

    async def test_logout_requires_auth(self, api_client, database):
        response = await api_client.post("/v1/users/logout")
        assert response.status_code == 401
