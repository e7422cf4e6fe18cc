import asyncio
import json
import os
import tempfile
import uuid
from typing import Any, Dict

import aiohttp
import httpx
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

# Settings are read at import time, so the environment has to be ready first
_TMP_DIR = tempfile.mkdtemp(prefix="livestock360-tests-")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))
os.environ.setdefault("ENVIRONMENT", "test")

from livestock360.core.database import Base, engine  # noqa: E402
from livestock360.main import app  # noqa: E402
from livestock360 import models  # noqa: E402,F401
from livestock360.client.gateway import AuthenticatedGateway  # noqa: E402
from livestock360.client.refresh import RefreshCoordinator  # noqa: E402
from livestock360.client.token_store import (  # noqa: E402
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    MemoryTokenStore,
)


@pytest.fixture
async def database():
    """Fresh schema for every test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    # Pooled connections belong to this test's event loop
    await engine.dispose()


@pytest.fixture
async def api_client(database):
    """HTTP client talking to the app in-process"""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver/api") as client:
        yield client


@pytest.fixture
def test_user_data() -> Dict[str, str]:
    """Test user data with unique user name and email"""
    unique_id = uuid.uuid4().hex[:8]
    return {
        "userName": f"farmer_{unique_id}",
        "fullName": "Test Farmer",
        "email": f"farmer_{unique_id}@example.com",
        "phone": "+254700000000",
        "password": "password123",
    }


@pytest.fixture
async def registered_user(api_client, test_user_data) -> Dict[str, Any]:
    """Register a user and return the credentials plus the created profile"""
    response = await api_client.post("/v1/users/register", json=test_user_data)
    assert response.status_code == 201, f"Registration failed: {response.text}"
    return {**test_user_data, "profile": response.json()["data"]}


@pytest.fixture
async def logged_in_user(api_client, registered_user) -> Dict[str, Any]:
    """Log the registered user in and return tokens and auth headers"""
    response = await api_client.post(
        "/v1/users/login",
        json={"email": registered_user["email"], "password": registered_user["password"]},
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    data = response.json()["data"]
    return {
        **registered_user,
        "access_token": data["accessToken"],
        "refresh_token": data["refreshToken"],
        "headers": {"Authorization": f"Bearer {data['accessToken']}"},
    }


@pytest.fixture
def auth_headers(logged_in_user) -> Dict[str, str]:
    return logged_in_user["headers"]


@pytest.fixture
def animal_data() -> Dict[str, Any]:
    return {
        "tagNumber": f"KE-{uuid.uuid4().hex[:6].upper()}",
        "name": "Daisy",
        "type": "Cow",
        "breed": "Friesian",
        "gender": "Female",
        "birthDate": "2022-03-15",
        "weight": 420.5,
    }


@pytest.fixture
async def created_animal(api_client, auth_headers, animal_data) -> Dict[str, Any]:
    response = await api_client.post("/v1/animals", json=animal_data, headers=auth_headers)
    assert response.status_code == 201, f"Animal creation failed: {response.text}"
    return response.json()["data"]


# Client side: a scripted backend the real gateway talks to over HTTP

FAKE_USER = {
    "id": "7b0c6c2e-4a57-4d55-9a0e-3c1a5c0f2b11",
    "userName": "farmer",
    "fullName": "Test Farmer",
    "email": "farmer@example.com",
    "phone": None,
    "createdAt": "2026-01-01T00:00:00+00:00",
}


class FakeBackend:
    """
    Minimal stand-in for the API.

    Protected routes accept only ``Bearer <access_token>``. The refresh
    route swaps in ``next_access_token`` and can be told to fail, stall or
    answer with garbage.
    """

    def __init__(self):
        self.access_token = "T1"
        self.refresh_token = "R1"
        self.next_access_token = "T2"
        self.next_refresh_token = "R2"
        self.issue_refresh_token = True
        self.refresh_status = 200
        self.refresh_malformed = False
        self.login_malformed = False
        self.refresh_delay = 0.1
        self.refresh_calls = 0
        self.logout_status = 200
        self.logout_calls = 0
        self.seen = []
        self.base_url = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/v1/users/refresh-token", self.refresh)
        app.router.add_post("/api/v1/users/login", self.login)
        app.router.add_post("/api/v1/users/logout", self.logout)
        app.router.add_get("/api/v1/users/me", self.protected)
        app.router.add_get("/api/v1/animals", self.protected)
        app.router.add_get("/api/v1/dashboard/overview", self.protected)
        app.router.add_get("/api/v1/always-unauthorized", self.always_unauthorized)
        app.router.add_get("/api/v1/status/{code}", self.fixed_status)
        app.router.add_get("/api/v1/slow", self.slow)
        app.router.add_get("/api/v1/garbled", self.garbled)
        return app

    def _authorized(self, request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.access_token}"

    @staticmethod
    def _unauthorized():
        return web.json_response({"success": False, "message": "Not authenticated"}, status=401)

    async def refresh(self, request):
        self.refresh_calls += 1
        body = await request.json()
        await asyncio.sleep(self.refresh_delay)
        if self.refresh_status != 200:
            return web.json_response(
                {"success": False, "message": "Invalid or expired refresh token"},
                status=self.refresh_status,
            )
        if self.refresh_malformed:
            return web.json_response({"success": True, "data": {"unexpected": True}})
        if body.get("refreshToken") != self.refresh_token:
            return web.json_response({"success": False, "message": "Invalid refresh token"}, status=401)

        self.access_token = self.next_access_token
        data = {"accessToken": self.access_token}
        if self.issue_refresh_token:
            self.refresh_token = self.next_refresh_token
            data["refreshToken"] = self.refresh_token
        return web.json_response({"success": True, "data": data})

    async def login(self, request):
        body = await request.json()
        if body.get("password") != "password123":
            return web.json_response({"success": False, "message": "Password is incorrect"}, status=401)
        if self.login_malformed:
            return web.json_response({"success": True, "data": {"accessToken": self.access_token}})
        return web.json_response({
            "success": True,
            "data": {
                "accessToken": self.access_token,
                "refreshToken": self.refresh_token,
                "tokenType": "bearer",
                "user": FAKE_USER,
            },
        })

    async def logout(self, request):
        self.logout_calls += 1
        if not self._authorized(request):
            return self._unauthorized()
        if self.logout_status != 200:
            return web.json_response({"success": False, "message": "Logout failed"}, status=self.logout_status)
        return web.json_response({"success": True, "data": {}})

    async def protected(self, request):
        self.seen.append((request.path, request.headers.get("Authorization")))
        if not self._authorized(request):
            return self._unauthorized()
        if request.path.endswith("/me"):
            return web.json_response({"success": True, "data": FAKE_USER})
        return web.json_response({"success": True, "data": {"path": request.path, "query": dict(request.query)}})

    async def always_unauthorized(self, request):
        self.seen.append((request.path, request.headers.get("Authorization")))
        return self._unauthorized()

    async def fixed_status(self, request):
        code = int(request.match_info["code"])
        return web.json_response({"success": False, "message": f"Failed with {code}"}, status=code)

    async def slow(self, request):
        await asyncio.sleep(1)
        return web.json_response({"success": True})

    async def garbled(self, request):
        # latin-1 error page, as some proxies send
        return web.Response(status=500, body=b"\xff\xfe proxy error")


@pytest.fixture
async def fake_backend():
    backend = FakeBackend()
    server = TestServer(backend.build_app())
    await server.start_server()
    backend.base_url = str(server.make_url("/api"))
    yield backend
    await server.close()


@pytest.fixture
async def http_session():
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
        yield session


@pytest.fixture
def token_store() -> MemoryTokenStore:
    """A saved session whose access token the backend no longer accepts"""
    return MemoryTokenStore({
        ACCESS_TOKEN_KEY: "T0-expired",
        REFRESH_TOKEN_KEY: "R1",
        USER_KEY: json.dumps(FAKE_USER),
    })


@pytest.fixture
def coordinator(http_session, token_store, fake_backend) -> RefreshCoordinator:
    return RefreshCoordinator(http_session, token_store, f"{fake_backend.base_url}/v1/users/refresh-token")


@pytest.fixture
def gateway(http_session, token_store, coordinator, fake_backend) -> AuthenticatedGateway:
    return AuthenticatedGateway(http_session, token_store, coordinator, fake_backend.base_url)
