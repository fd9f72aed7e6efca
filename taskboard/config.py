"""
Configuration and settings for the task board service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.firebase_constants import TASKS_COLLECTION


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # SQL database (Postgres expected). Takes precedence over Firestore.
    database_url: Optional[str] = Field(default=None)

    # Firebase (Authentication + Firestore)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_APPLICATION_CREDENTIALS", "firebase_credentials_path"
        ),
    )
    tasks_collection: str = Field(default=TASKS_COLLECTION)
    # Web SDK config for the login page
    firebase_web_api_key: Optional[str] = Field(default=None)
    firebase_auth_domain: Optional[str] = Field(default=None)

    # Sessions
    session_cookie_name: str = Field(default="session")
    session_max_age_days: int = Field(default=5, ge=1, le=14)
    login_route: str = Field(default="/login")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "TASKBOARD_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
