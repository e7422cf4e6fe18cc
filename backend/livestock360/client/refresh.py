"""
Single-flight access token refresh.

However many requests fail with 401 at the same time, one refresh call
goes to the server. The first caller performs it; everyone arriving while
it is in flight waits on a future and is released, in arrival order,
with the same outcome once it settles.
"""
import asyncio
import logging
from typing import List, Optional

import aiohttp
from pydantic import ValidationError

from livestock360.client.errors import NETWORK_ERROR_MESSAGE, NetworkError, SessionExpiredError
from livestock360.client.responses import error_message, read_body
from livestock360.client.models import TokenPair
from livestock360.client.token_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    TokenStore,
    clear_session,
)

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Owns the refresh state: the in-flight flag and the queue of waiters."""

    def __init__(self, session: aiohttp.ClientSession, store: TokenStore, refresh_url: str):
        self._session = session
        self._store = store
        self._refresh_url = refresh_url
        self.is_refreshing = False
        self._pending: List[asyncio.Future] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def refresh(self) -> str:
        """
        Return a freshly issued access token.

        Raises:
            SessionExpiredError: the refresh failed; the token store has been
                cleared and every waiter of this cycle gets this same error.
        """
        # Check and set happen with no await in between
        if self.is_refreshing:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            return await future

        self.is_refreshing = True
        try:
            access_token = await self._request_new_tokens()
        except asyncio.CancelledError:
            self._settle(error=NetworkError("Token refresh was cancelled"))
            raise
        except Exception as exc:
            error = exc if isinstance(exc, SessionExpiredError) else SessionExpiredError(status=None)
            logger.warning("Token refresh failed, clearing session: %s", error.message)
            try:
                await clear_session(self._store)
            finally:
                self._settle(error=error)
            if error is exc:
                raise
            raise error from exc

        logger.info("Access token refreshed, releasing %d queued request(s)", len(self._pending))
        self._settle(token=access_token)
        return access_token

    def _settle(self, token: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        pending, self._pending = self._pending, []
        self.is_refreshing = False
        for future in pending:
            if future.done():
                # Waiter was cancelled
                continue
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(token)

    async def _request_new_tokens(self) -> str:
        refresh_token = await self._store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            raise SessionExpiredError("No refresh token available")

        try:
            async with self._session.post(
                self._refresh_url, json={"refreshToken": refresh_token}
            ) as response:
                status = response.status
                reason = response.reason
                body = await read_body(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SessionExpiredError(NETWORK_ERROR_MESSAGE, status=None) from e

        if status != 200:
            raise SessionExpiredError(error_message(body, reason), status=status, data=body)

        try:
            tokens = TokenPair.model_validate(body.get("data") if isinstance(body, dict) else None)
        except ValidationError as e:
            raise SessionExpiredError("Malformed token refresh response", status=status, data=body) from e

        await self._store.set(ACCESS_TOKEN_KEY, tokens.access_token)
        # The server may keep the old refresh token valid and not send a new one
        if tokens.refresh_token:
            await self._store.set(REFRESH_TOKEN_KEY, tokens.refresh_token)
        return tokens.access_token
