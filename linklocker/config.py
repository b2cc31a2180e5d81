"""
Configuration and settings for the LinkLocker service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from linklocker.constants import DEFAULT_AVATAR_URL, SESSION_STORAGE_KEY


class Settings(BaseSettings):
    """Environment-backed settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Firestore
    firebase_project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FIREBASE_PROJECT_ID", "firebase_project_id"),
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FIREBASE_CREDENTIALS_PATH", "firebase_credentials_path"
        ),
    )

    # Session persistence
    session_storage_path: str = Field(
        default=".linklocker/session.json",
        validation_alias=AliasChoices(
            "LINKLOCKER_SESSION_PATH", "session_storage_path"
        ),
    )
    session_storage_key: str = Field(default=SESSION_STORAGE_KEY)
    default_avatar_url: str = Field(default=DEFAULT_AVATAR_URL)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "LINKLOCKER_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
