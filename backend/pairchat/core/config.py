from functools import lru_cache
import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def flexible_json_loads(value: str) -> Any:
    """Gracefully fall back to raw strings when JSON decoding fails."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


DEFAULT_BANNED_WORDS = [
    "xxx",
    "hate",
    "abuse",
    "violence",
    "racist",
    "sexist",
    "discriminat",
    "harass",
    "threat",
    "bully",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        json_loads=flexible_json_loads,
    )

    PROJECT_NAME: str = "Pairchat API"
    API_V1_STR: str = "/api/v1"

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] | str = Field(default_factory=lambda: ["*"])

    LOG_LEVEL: str = "INFO"

    BANNED_WORDS: list[str] | str = Field(default_factory=lambda: list(DEFAULT_BANNED_WORDS))
    CHAT_MESSAGE_MAX_LENGTH: int = 2000

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return ["*"]
        if isinstance(value, str):
            if not value.strip():
                return ["*"]
            items = value.split(",")
        else:
            items = value
        return [item.strip() for item in items if item and item.strip()]

    @field_validator("BANNED_WORDS", mode="before")
    @classmethod
    def parse_banned_words(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return list(DEFAULT_BANNED_WORDS)
        if isinstance(value, str):
            if not value.strip():
                return []
            items = value.split(",")
        else:
            items = value
        normalized: list[str] = []
        for word in items:
            cleaned = word.strip().lower()
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, value: str | None) -> str:
        if not value:
            return "INFO"
        return str(value).strip().upper()


@lru_cache
# Use caching to avoid re-reading the env file over and over
# (FastAPI startup imports Config many times).
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
