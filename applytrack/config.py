# applytrack/config.py

from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # --- Core ---
    SECRET_KEY: str = Field("change-me", description="JWT signing key")
    ALGORITHM: str = "HS256"
    # Default session lifetime is 7 days
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 7, ge=1)
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = Field("sqlite:///./applytrack.db")

    # --- HTTP surface ---
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    # --- Token transport (checked in this order: header, bearer, cookie, query) ---
    AUTH_HEADER_NAME: str = "x-auth-token"
    AUTH_COOKIE_NAME: str = "token"
    AUTH_QUERY_PARAM: str = "token"

    # Names the realtime connection that originated an HTTP mutation
    SOCKET_ID_HEADER: str = "x-socket-id"

    # --- Accounts ---
    PASSWORD_MIN_LENGTH: int = Field(6, ge=1)
    RESET_TOKEN_EXPIRE_MINUTES: int = Field(10, ge=1)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
