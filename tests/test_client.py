import pytest

from livestock360.client import ApiError, ClientSettings, LivestockClient, SessionExpiredError
from livestock360.client.token_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    SESSION_KEYS,
    USER_KEY,
    MemoryTokenStore,
)


@pytest.fixture
def client_settings(fake_backend, tmp_path) -> ClientSettings:
    return ClientSettings(
        API_BASE_URL=fake_backend.base_url,
        REQUEST_TIMEOUT_SECONDS=5,
        TOKEN_STORE_PATH=str(tmp_path / "session.db"),
    )


@pytest.fixture
async def livestock_client(client_settings):
    async with LivestockClient(client_settings) as client:
        yield client


class TestClientSession:
    """Test login, logout and session restore through the client"""

    async def test_login_persists_session(self, livestock_client):
        session = await livestock_client.login("farmer@example.com", "password123")

        assert session.access_token == "T1"
        assert session.user.full_name == "Test Farmer"
        assert await livestock_client.is_authenticated()
        assert await livestock_client.store.get(REFRESH_TOKEN_KEY) == "R1"

    async def test_wrong_password(self, livestock_client, fake_backend):
        with pytest.raises(ApiError) as exc_info:
            await livestock_client.login("farmer@example.com", "nope")

        assert exc_info.value.status == 401
        assert exc_info.value.message == "Password is incorrect"
        assert fake_backend.refresh_calls == 0
        assert not await livestock_client.is_authenticated()

    async def test_session_restored_after_restart(self, client_settings):
        async with LivestockClient(client_settings) as client:
            await client.login("farmer@example.com", "password123")

        async with LivestockClient(client_settings) as client:
            session = await client.restore_session()
            assert session is not None
            assert session.user.user_name == "farmer"
            assert (await client.get_current_user()).email == "farmer@example.com"

    async def test_restore_without_session(self, livestock_client):
        assert await livestock_client.restore_session() is None

    async def test_restore_discards_partial_session(self, livestock_client):
        await livestock_client.store.set(ACCESS_TOKEN_KEY, "T1")
        await livestock_client.store.set(REFRESH_TOKEN_KEY, "R1")

        assert await livestock_client.restore_session() is None
        assert not await livestock_client.is_authenticated()

    async def test_malformed_login_response(self, livestock_client, fake_backend):
        fake_backend.login_malformed = True

        with pytest.raises(ApiError) as exc_info:
            await livestock_client.login("farmer@example.com", "password123")

        assert exc_info.value.message == "Malformed login response"
        assert exc_info.value.status == 200
        assert not await livestock_client.is_authenticated()

    async def test_logout_clears_store(self, livestock_client, fake_backend):
        await livestock_client.login("farmer@example.com", "password123")

        await livestock_client.logout()

        assert fake_backend.logout_calls == 1
        for key in SESSION_KEYS:
            assert await livestock_client.store.get(key) is None

    async def test_logout_clears_store_when_server_fails(self, livestock_client, fake_backend):
        await livestock_client.login("farmer@example.com", "password123")
        fake_backend.logout_status = 500

        await livestock_client.logout()

        assert not await livestock_client.is_authenticated()
        assert await livestock_client.restore_session() is None


class TestClientRequests:
    """Test that client calls ride on the refreshing gateway"""

    async def test_expired_token_is_refreshed(self, client_settings, fake_backend):
        store = MemoryTokenStore()
        async with LivestockClient(client_settings, store=store) as client:
            await client.login("farmer@example.com", "password123")
            fake_backend.access_token = "T1-rotated-out"

            data = await client.get_dashboard_overview()

        assert data["path"] == "/api/v1/dashboard/overview"
        assert fake_backend.refresh_calls == 1
        assert await store.get(ACCESS_TOKEN_KEY) == "T2"

    async def test_filters_become_query_params(self, livestock_client):
        await livestock_client.login("farmer@example.com", "password123")

        data = await livestock_client.list_animals(type="Cow", page=2, search=None)

        assert data["query"] == {"type": "Cow", "page": "2"}

    async def test_get_current_user_updates_cached_profile(self, livestock_client):
        await livestock_client.login("farmer@example.com", "password123")
        await livestock_client.store.set(USER_KEY, '{"userName": "stale"}')

        user = await livestock_client.get_current_user()

        assert user.user_name == "farmer"
        assert (await livestock_client.restore_session()).user.user_name == "farmer"

    async def test_failed_refresh_requires_login(self, livestock_client, fake_backend):
        await livestock_client.login("farmer@example.com", "password123")
        fake_backend.access_token = "T1-rotated-out"
        fake_backend.refresh_status = 401

        with pytest.raises(SessionExpiredError) as exc_info:
            await livestock_client.list_animals()

        assert exc_info.value.should_logout is True
        assert not await livestock_client.is_authenticated()

    async def test_client_must_be_opened(self, client_settings):
        client = LivestockClient(client_settings, store=MemoryTokenStore())
        with pytest.raises(RuntimeError):
            await client.get_animal_stats()
