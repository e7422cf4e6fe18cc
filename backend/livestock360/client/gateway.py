"""Authenticated request gateway: every API call of the client goes through here."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from livestock360.client.errors import (
    SESSION_EXPIRED_MESSAGE,
    ApiError,
    NetworkError,
    SessionExpiredError,
)
from livestock360.client.refresh import RefreshCoordinator
from livestock360.client.responses import error_message, read_body
from livestock360.client.token_store import ACCESS_TOKEN_KEY, TokenStore, clear_session

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


@dataclass
class OutgoingRequest:
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    # Public endpoints (login, register) never trigger a refresh
    authenticate: bool = True
    # Set once the request has been replayed after a refresh
    retried: bool = False


def _query_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        elif not isinstance(value, (str, int, float)):
            value = str(value)
        cleaned[key] = value
    return cleaned


class AuthenticatedGateway:
    """
    Attach the stored access token to outgoing requests and recover from an
    expired one.

    A 401 on an authenticated request hands over to the refresh coordinator
    and replays the request once with the new token. A second 401 for the
    same request, or a failed refresh, ends the session.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        store: TokenStore,
        coordinator: RefreshCoordinator,
        base_url: str,
    ):
        self._session = session
        self._store = store
        self._coordinator = coordinator
        self.base_url = base_url.rstrip("/")

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        authenticate: bool = True,
    ) -> Any:
        """
        Send a request and return its decoded JSON body.

        Raises:
            SessionExpiredError: the access token could not be renewed.
            NetworkError: no response was received.
            ApiError: any other non-2xx response.
        """
        outgoing = OutgoingRequest(
            method=method.upper(),
            path=path,
            params=_query_params(params),
            json=json,
            headers=dict(headers or {}),
            authenticate=authenticate,
        )

        access_token = await self._store.get(ACCESS_TOKEN_KEY)
        if access_token:
            outgoing.headers[AUTHORIZATION] = f"Bearer {access_token}"

        return await self._send(outgoing)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def _send(self, outgoing: OutgoingRequest) -> Any:
        status, reason, body = await self._dispatch(outgoing)

        if status < 400:
            return body

        if status == 401 and outgoing.authenticate:
            return await self._recover(outgoing, body)

        raise ApiError(error_message(body, reason), status=status, data=body)

    async def _recover(self, outgoing: OutgoingRequest, body: Any) -> Any:
        if outgoing.retried:
            logger.warning("%s %s rejected again after token refresh, ending session",
                           outgoing.method, outgoing.path)
            await clear_session(self._store)
            raise SessionExpiredError(error_message(body, SESSION_EXPIRED_MESSAGE), status=401, data=body)

        outgoing.retried = True
        access_token = await self._coordinator.refresh()
        outgoing.headers[AUTHORIZATION] = f"Bearer {access_token}"
        return await self._send(outgoing)

    async def _dispatch(self, outgoing: OutgoingRequest):
        try:
            async with self._session.request(
                outgoing.method,
                self.url_for(outgoing.path),
                params=outgoing.params,
                json=outgoing.json,
                headers=outgoing.headers,
            ) as response:
                return response.status, response.reason, await read_body(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("%s %s failed without a response: %r", outgoing.method, outgoing.path, e)
            raise NetworkError() from e
