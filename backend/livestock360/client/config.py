from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000/api"
    REQUEST_TIMEOUT_SECONDS: float = Field(30, gt=0)
    REFRESH_PATH: str = "/v1/users/refresh-token"
    # None keeps tokens in memory only
    TOKEN_STORE_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="LIVESTOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )
