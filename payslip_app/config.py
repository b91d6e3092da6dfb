from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()

ENV_BOOL_TRUE = {"1", "true", "yes", "on"}
STORE_BACKENDS = {"memory", "file"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ENV_BOOL_TRUE


def _env_environment() -> Literal["development", "production"]:
    lower = os.getenv("ENV", "development").lower()
    normalized = lower if lower in {"development", "production"} else "development"
    return cast(Literal["development", "production"], normalized)


class Settings(BaseModel):
    environment: Literal["development", "production"] = Field(default_factory=_env_environment)
    base_url: str = Field(default_factory=lambda: os.getenv("BASE_URL", "http://localhost:8000"))
    admin_email: str = Field(default_factory=lambda: os.getenv("ADMIN_EMAIL", "admin@example.com"))
    admin_name: str = Field(default_factory=lambda: os.getenv("ADMIN_NAME", "Administrator"))
    admin_password: str = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD", "change-me-please"))
    enable_analytics: bool = Field(default_factory=lambda: _env_bool("ENABLE_ANALYTICS", False))
    store_backend: str = Field(default_factory=lambda: os.getenv("STORE_BACKEND", "memory"))
    store_root: str = Field(default_factory=lambda: os.getenv("STORE_ROOT", "data/kv"))
    store_crypto_key: str | None = Field(default_factory=lambda: os.getenv("STORE_CRYPTO_KEY"))
    session_ttl_hours: int = Field(default_factory=lambda: int(os.getenv("SESSION_TTL_HOURS", "24")))
    default_api_key_name: str = Field(
        default_factory=lambda: os.getenv("DEFAULT_API_KEY_NAME", "default-internal")
    )
    build_version: str = Field(default_factory=lambda: os.getenv("BUILD_VERSION", "dev"))
    build_sha: str = Field(default_factory=lambda: os.getenv("BUILD_SHA", "local"))
    log_dir: str = Field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))

    model_config = ConfigDict(frozen=True, validate_default=True)

    @field_validator("store_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: str) -> str:
        lower = (value or "memory").lower()
        if lower not in STORE_BACKENDS:
            raise ValueError(f"STORE_BACKEND must be one of {sorted(STORE_BACKENDS)}, got {lower}")
        return lower

    @field_validator("session_ttl_hours")
    @classmethod
    def _validate_ttl(cls, value: int) -> int:
        return max(1, value)

    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
