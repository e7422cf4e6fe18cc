"""Token schemas for authentication."""
from typing import Optional

from pydantic import Field

from livestock360.schemas.response import CamelModel
from livestock360.schemas.user import UserResponse


class TokenPair(CamelModel):
    """Token pair response model."""

    access_token: str = Field(..., description="JWT access token (short-lived)")
    refresh_token: str = Field(..., description="JWT refresh token (long-lived, single use)")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(900, description="Access token expiration in seconds")


class LoginResponse(TokenPair):
    user: UserResponse


class RefreshTokenRequest(CamelModel):
    """Refresh token request model."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token to exchange for a new pair")


class SessionInfo(CamelModel):
    id: str
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    client_info: dict = Field(default_factory=dict)
    last_used: Optional[str] = None


class SessionList(CamelModel):
    active_sessions: list[SessionInfo]
    total: int
