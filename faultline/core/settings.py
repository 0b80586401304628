from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="FAULTLINE_"
    )

    app_name: str = "faultline"
    env: str = "production"
    log_level: str = "INFO"

    request_id_header: str = "X-Request-Id"
    development_environments: list[str] = ["local", "development", "dev", "test"]

    problem_content_type: str = "application/problem+json"

    default_authentication_schemes: list[str] = []
    fallback_authentication_schemes: list[str] = []
    authorization_policies: dict[str, list[str]] = {}

    cache_expiration_seconds: float = 300.0
    cache_local_expiration_seconds: float = 60.0
    cache_failure_expiration_seconds: float | None = 30.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
