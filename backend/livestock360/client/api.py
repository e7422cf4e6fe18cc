"""Typed client for the Livestock360 API."""
import json
import logging
from functools import partial
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from livestock360.client.config import ClientSettings
from livestock360.client.errors import ApiError
from livestock360.client.gateway import AuthenticatedGateway
from livestock360.client.models import Session, UserProfile
from livestock360.client.refresh import RefreshCoordinator
from livestock360.client.token_store import (
    ACCESS_TOKEN_KEY,
    USER_KEY,
    MemoryTokenStore,
    SQLiteTokenStore,
    TokenStore,
    clear_session,
    load_session,
    save_session,
)

logger = logging.getLogger(__name__)

USERS = "/v1/users"
ANIMALS = "/v1/animals"
HEALTH_RECORDS = "/v1/health-records"
DASHBOARD = "/v1/dashboard"


def _data(body: Any) -> Any:
    """Unwrap the ``data`` field of the response envelope."""
    if isinstance(body, dict):
        return body.get("data")
    return body


class LivestockClient:
    """
    Entry point for applications talking to the backend.

    Usage::

        async with LivestockClient() as client:
            if await client.restore_session() is None:
                await client.login("farmer@example.com", "secret")
            overview = await client.get_dashboard_overview()
    """

    def __init__(self, settings: Optional[ClientSettings] = None, store: Optional[TokenStore] = None):
        self.settings = settings or ClientSettings()
        if store is None:
            if self.settings.TOKEN_STORE_PATH:
                store = SQLiteTokenStore(self.settings.TOKEN_STORE_PATH)
            else:
                store = MemoryTokenStore()
        self.store = store
        self._session: Optional[aiohttp.ClientSession] = None
        self.coordinator: Optional[RefreshCoordinator] = None
        self.gateway: Optional[AuthenticatedGateway] = None

    async def open(self) -> "LivestockClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.REQUEST_TIMEOUT_SECONDS),
                json_serialize=partial(json.dumps, default=str),
            )
            base_url = self.settings.API_BASE_URL.rstrip("/")
            self.coordinator = RefreshCoordinator(
                self._session,
                self.store,
                f"{base_url}/{self.settings.REFRESH_PATH.lstrip('/')}",
            )
            self.gateway = AuthenticatedGateway(self._session, self.store, self.coordinator, base_url)
        return self

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
        await self.store.close()

    async def __aenter__(self) -> "LivestockClient":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _gateway(self) -> AuthenticatedGateway:
        if self.gateway is None:
            raise RuntimeError("LivestockClient is not open; use 'async with LivestockClient()'")
        return self.gateway

    # Auth

    async def login(self, email: str, password: str) -> Session:
        body = await self._gateway().post(
            f"{USERS}/login",
            json={"email": email, "password": password},
            authenticate=False,
        )
        data = _data(body) or {}
        try:
            session = Session(
                user=data.get("user"),
                access_token=data.get("accessToken"),
                refresh_token=data.get("refreshToken"),
            )
        except (AttributeError, ValidationError) as e:
            raise ApiError("Malformed login response", status=200, data=body) from e
        await save_session(self.store, session)
        logger.info("Logged in as %s", session.user.user_name)
        return session

    async def register(
        self,
        user_name: str,
        full_name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
    ) -> UserProfile:
        body = await self._gateway().post(
            f"{USERS}/register",
            json={
                "userName": user_name,
                "fullName": full_name,
                "email": email,
                "password": password,
                "phone": phone,
            },
            authenticate=False,
        )
        return UserProfile.model_validate(_data(body))

    async def logout(self) -> None:
        """Revoke the session on the server if possible; always forget it locally."""
        try:
            if await self.store.get(ACCESS_TOKEN_KEY):
                await self._gateway().post(f"{USERS}/logout")
        except ApiError as e:
            logger.warning("Server logout failed, clearing local session anyway: %s", e.message)
        finally:
            await clear_session(self.store)

    async def get_current_user(self) -> UserProfile:
        body = await self._gateway().get(f"{USERS}/me")
        user = UserProfile.model_validate(_data(body))
        await self.store.set(USER_KEY, user.model_dump_json(by_alias=True))
        return user

    async def restore_session(self) -> Optional[Session]:
        return await load_session(self.store)

    async def is_authenticated(self) -> bool:
        return bool(await self.store.get(ACCESS_TOKEN_KEY))

    # Animals

    async def list_animals(self, **filters) -> Dict[str, Any]:
        """Filters: type, status, search, sort, page, limit."""
        return _data(await self._gateway().get(ANIMALS, params=filters))

    async def get_animal(self, animal_id: str) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{ANIMALS}/{animal_id}"))

    async def create_animal(self, animal: Dict[str, Any]) -> Dict[str, Any]:
        return _data(await self._gateway().post(ANIMALS, json=animal))

    async def update_animal(self, animal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return _data(await self._gateway().put(f"{ANIMALS}/{animal_id}", json=changes))

    async def delete_animal(self, animal_id: str) -> None:
        await self._gateway().delete(f"{ANIMALS}/{animal_id}")

    async def get_animal_stats(self) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{ANIMALS}/stats"))

    # Health records

    async def list_health_records(self, **filters) -> Dict[str, Any]:
        """Filters: animalId, type, status, startDate, endDate, page, limit."""
        return _data(await self._gateway().get(HEALTH_RECORDS, params=filters))

    async def get_health_record(self, record_id: str) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{HEALTH_RECORDS}/{record_id}"))

    async def get_records_by_animal(self, animal_id: str) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{HEALTH_RECORDS}/animal/{animal_id}"))

    async def get_upcoming_records(self, days: int = 30) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{HEALTH_RECORDS}/upcoming", params={"days": days}))

    async def create_health_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return _data(await self._gateway().post(HEALTH_RECORDS, json=record))

    async def update_health_record(self, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return _data(await self._gateway().put(f"{HEALTH_RECORDS}/{record_id}", json=changes))

    async def delete_health_record(self, record_id: str) -> None:
        await self._gateway().delete(f"{HEALTH_RECORDS}/{record_id}")

    # Dashboard

    async def get_dashboard_overview(self) -> Dict[str, Any]:
        return _data(await self._gateway().get(f"{DASHBOARD}/overview"))
