"""Client-side settings, loaded from the environment like the server's."""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_base_url: str = "http://localhost:5000"
    api_timeout_seconds: float = 10.0

    # Where FileStorage keeps the session; unset means memory only
    session_file: Optional[str] = None
