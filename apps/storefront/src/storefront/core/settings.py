from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"

    # Storefront REST backend
    api_base_url: str = "http://localhost:8080/api/v1"
    request_timeout_seconds: float = 10.0

    # Persisted sign-in state for the CLI
    session_storage_path: Path = Path.home() / ".storefront" / "session.json"

    # Admin console notices
    notice_dismiss_seconds: float = 4.0

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value

    @field_validator("session_storage_path", mode="before")
    @classmethod
    def _expand_storage_path(cls, value: object) -> object:
        if isinstance(value, str):
            return Path(value).expanduser()
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
