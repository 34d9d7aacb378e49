from functools import lru_cache
import json
from typing import Annotated, Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def flexible_json_loads(value: str) -> Any:
    """Gracefully fall back to raw strings when JSON decoding fails."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


DEFAULT_CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "apikey", "x-client-info"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "FCM Relay"

    # Base64-encoded service-account JSON document. Required at startup.
    FIREBASE_SERVICE_ACCOUNT_KEY_BASE64: SecretStr | None = None

    FCM_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    FCM_SEND_URL: str = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
    FCM_REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    FCM_MAX_CONCURRENCY: int = Field(default=10, ge=1)
    FCM_TOKEN_CACHE_ENABLED: bool = False
    FCM_TOKEN_REFRESH_MARGIN_SECONDS: int = Field(default=60, ge=0)

    CORS_ALLOW_ORIGIN: str = "*"
    # Comma-separated or JSON list
    CORS_ALLOW_HEADERS: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ALLOW_HEADERS)
    )

    @field_validator("CORS_ALLOW_HEADERS", mode="before")
    @classmethod
    def parse_allow_headers(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return list(DEFAULT_CORS_ALLOW_HEADERS)
        if isinstance(value, str):
            if not value.strip():
                return list(DEFAULT_CORS_ALLOW_HEADERS)
            decoded = flexible_json_loads(value)
            items = decoded if isinstance(decoded, list) else value.split(",")
        else:
            items = value
        normalized: list[str] = []
        for header in items:
            cleaned = str(header).strip()
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized or list(DEFAULT_CORS_ALLOW_HEADERS)


@lru_cache
# Use caching to avoid re-reading the env file over and over
# (FastAPI startup imports Config many times).
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
