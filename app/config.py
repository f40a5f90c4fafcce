"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_BLOCKED_USER_AGENTS: tuple[str, ...] = (
    "axios",
    "node-fetch",
    "cheerio",
    "curl",
    "python-requests",
    "java",
    "okhttp",
)


def _parse_list(value: object, *, lowercase: bool = False) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raw_values = [part.strip() for part in value.split(",")]
    elif isinstance(value, Iterable):
        raw_values = [str(part).strip() for part in value]
    else:
        raise TypeError("List settings must be a string or iterable of strings")

    cleaned: list[str] = []
    for entry in raw_values:
        if not entry:
            continue
        if lowercase:
            entry = entry.lower()
        if entry not in cleaned:
            cleaned.append(entry)
    return tuple(cleaned)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Movie Watcher", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    catalog_source: str = Field(default="data/movies.json", alias="CATALOG_SOURCE")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./moviewatcher.db", alias="DATABASE_URL"
    )

    notification_seconds: float = Field(
        default=3.0, alias="NOTIFICATION_SECONDS", gt=0, le=60
    )
    session_idle_seconds: int = Field(
        default=1_800, alias="SESSION_IDLE_SECONDS", ge=60
    )
    session_cookie: str = Field(default="mw_session", alias="SESSION_COOKIE")
    autoplay: bool = Field(default=True, alias="AUTOPLAY")

    blocked_user_agents: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_BLOCKED_USER_AGENTS, alias="BLOCKED_USER_AGENTS"
    )
    blocked_ips: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(), alias="BLOCKED_IPS"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("blocked_user_agents", mode="before")
    @classmethod
    def _parse_user_agents(cls, value: object) -> tuple[str, ...]:
        """Normalise user agent patterns to lowercase substrings."""

        return _parse_list(value, lowercase=True)

    @field_validator("blocked_ips", mode="before")
    @classmethod
    def _parse_ips(cls, value: object) -> tuple[str, ...]:
        return _parse_list(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
