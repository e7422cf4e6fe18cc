from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ClientModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TokenPair(ClientModel):
    access_token: str
    refresh_token: Optional[str] = None


class UserProfile(ClientModel):
    id: Optional[str] = None
    user_name: str
    full_name: str
    email: str
    phone: Optional[str] = None
    created_at: Optional[str] = None


class Session(ClientModel):
    """A restored login: the cached profile plus both tokens."""

    user: UserProfile
    access_token: str
    refresh_token: str
