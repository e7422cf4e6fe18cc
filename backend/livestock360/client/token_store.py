"""
Durable key-value storage for the client session.

Three slots make up a session: the access token, the refresh token and
the cached user profile (as JSON). Reads never raise; a missing or
unreadable key reads as ``None``.
"""
import abc
import json
import logging
import sqlite3
from typing import Dict, Iterable, Optional

import aiosqlite
from pydantic import ValidationError

from livestock360.client.models import Session

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "@access_token"
REFRESH_TOKEN_KEY = "@refresh_token"
USER_KEY = "@auth_user"

SESSION_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


class TokenStore(abc.ABC):
    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Value stored under ``key``, or None."""

    @abc.abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Overwrite ``key``; readers see the old value or the new one, nothing in between."""

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``; deleting a missing key is a no-op."""

    async def remove_all(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.remove(key)

    async def close(self) -> None:
        pass


class MemoryTokenStore(TokenStore):
    """Process-local store; the session ends with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteTokenStore(TokenStore):
    """Store backed by a single-table SQLite file, durable across restarts."""

    def __init__(self, path: str):
        self.path = path
        self.db: Optional[aiosqlite.Connection] = None

    async def open(self) -> "SQLiteTokenStore":
        if self.db is None:
            self.db = await aiosqlite.connect(self.path)
            await self.db.execute(
                "CREATE TABLE IF NOT EXISTS token_store (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            await self.db.commit()
        return self

    async def _connection(self) -> aiosqlite.Connection:
        if self.db is None:
            await self.open()
        return self.db

    async def get(self, key: str) -> Optional[str]:
        try:
            db = await self._connection()
            cursor = await db.execute("SELECT value FROM token_store WHERE key=?", (key,))
            row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.warning("Could not read %s from token store: %s", key, e)
            return None
        return row[0] if row is not None else None

    async def set(self, key: str, value: str) -> None:
        db = await self._connection()
        await db.execute(
            "INSERT OR REPLACE INTO token_store (key, value) VALUES (?, ?)",
            (key, value),
        )
        await db.commit()

    async def remove(self, key: str) -> None:
        db = await self._connection()
        await db.execute("DELETE FROM token_store WHERE key=?", (key,))
        await db.commit()

    async def remove_all(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        db = await self._connection()
        placeholders = ",".join("?" for _ in keys)
        await db.execute(f"DELETE FROM token_store WHERE key IN ({placeholders})", keys)
        await db.commit()

    async def close(self) -> None:
        if self.db is not None:
            await self.db.close()
            self.db = None


async def save_session(store: TokenStore, session: Session) -> None:
    await store.set(USER_KEY, session.user.model_dump_json(by_alias=True))
    await store.set(ACCESS_TOKEN_KEY, session.access_token)
    await store.set(REFRESH_TOKEN_KEY, session.refresh_token)


async def clear_session(store: TokenStore) -> None:
    await store.remove_all(SESSION_KEYS)


async def load_session(store: TokenStore) -> Optional[Session]:
    """
    Restore the session saved by a previous run.

    A session is all three slots or nothing: if any slot is missing or the
    profile does not parse, the leftover slots are removed and the caller is
    treated as logged out. Storage failures are logged and also mean
    "logged out".
    """
    try:
        user_json = await store.get(USER_KEY)
        access_token = await store.get(ACCESS_TOKEN_KEY)
        refresh_token = await store.get(REFRESH_TOKEN_KEY)
        if not (user_json or access_token or refresh_token):
            return None
        if user_json and access_token and refresh_token:
            return Session(
                user=json.loads(user_json),
                access_token=access_token,
                refresh_token=refresh_token,
            )
        logger.warning("Discarding incomplete saved session")
    except sqlite3.Error as e:
        logger.error("Failed to load auth data: %s", e)
        return None
    except (ValueError, ValidationError) as e:
        logger.error("Failed to load auth data: %s", e)

    try:
        await clear_session(store)
    except sqlite3.Error as e:
        logger.error("Failed to clear auth data: %s", e)
    return None
