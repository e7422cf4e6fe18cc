from livestock360.client.api import LivestockClient
from livestock360.client.config import ClientSettings
from livestock360.client.errors import ApiError, NetworkError, SessionExpiredError
from livestock360.client.gateway import AuthenticatedGateway
from livestock360.client.models import Session, TokenPair, UserProfile
from livestock360.client.refresh import RefreshCoordinator
from livestock360.client.token_store import MemoryTokenStore, SQLiteTokenStore, TokenStore

__all__ = [
    "ApiError",
    "AuthenticatedGateway",
    "ClientSettings",
    "LivestockClient",
    "MemoryTokenStore",
    "NetworkError",
    "RefreshCoordinator",
    "SQLiteTokenStore",
    "Session",
    "SessionExpiredError",
    "TokenPair",
    "TokenStore",
    "UserProfile",
]
