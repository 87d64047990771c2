"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("http://localhost:3000",)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Media Tracker", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8080, alias="PORT")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./mediatracker.db", alias="DATABASE_URL"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CORS_ORIGINS, alias="CORS_ORIGINS"
    )

    strict_categories: bool = Field(default=True, alias="STRICT_CATEGORIES")

    session_cookie_name: str = Field(default="SESSION", alias="SESSION_COOKIE")
    session_ttl_seconds: int = Field(
        default=86_400, alias="SESSION_TTL", ge=60
    )
    password_hash_iterations: int = Field(
        default=390_000, alias="PASSWORD_HASH_ITERATIONS", ge=10_000
    )
    write_retry_limit: int = Field(
        default=3, alias="WRITE_RETRY_LIMIT", ge=1, le=10
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: object) -> tuple[str, ...]:
        """Accept comma separated origins as well as lists."""

        if value is None:
            return DEFAULT_CORS_ORIGINS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CORS_ORIGINS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            origin = entry.rstrip("/")
            if origin and origin not in cleaned:
                cleaned.append(origin)
        return tuple(cleaned)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level {value!r}")
        return level

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
