"""infrakit centralized configuration management.

Uses pydantic-settings to load configuration from environment variables
and .env files with validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Annotated


def _default_cache_dir() -> Path:
    return Path.home() / ".infrakit"


class Settings(BaseSettings):
    """infrakit settings.

    All settings can be overridden via environment variables
    prefixed with INFRAKIT_.

    Example:
        INFRAKIT_CACHE_DIR=/tmp/infrakit
        INFRAKIT_API_PORT=9090
        INFRAKIT_SEARCH_SERVICES=project,ec2,cloudrun
    """

    model_config = SettingsConfigDict(
        env_prefix="INFRAKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Snapshot store
    cache_dir: Path = Field(default_factory=_default_cache_dir, description="Directory holding the snapshot")
    cache_file: str = Field(default="cache.json", description="Snapshot file name")
    lock_timeout: float = Field(default=10.0, ge=0, description="Seconds to wait for the writer lock")

    # API Server
    api_host: str = Field(default="127.0.0.1", description="API server bind address")
    api_port: int = Field(default=8080, description="API server port")

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:8080", "http://127.0.0.1:8080"],
        description="Allowed CORS origins"
    )

    # Search
    search_services: Annotated[List[str], NoDecode] = Field(
        default=["project", "ec2"],
        description="Services matched by the HTTP search endpoint"
    )
    fuzzy_limit: int = Field(default=20, ge=1, description="Candidates shown by the CLI search")

    # Sync
    partial_sync: bool = Field(
        default=False,
        description="Continue past failing fetchers and report them as warnings"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("cors_origins", "search_services", mode="before")
    @classmethod
    def split_csv(cls, v: Any) -> Any:
        """Accept comma-separated strings from the environment."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def snapshot_path(self) -> Path:
        return Path(self.cache_dir).expanduser() / self.cache_file

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins, handling comma-separated env var."""
        cors_env = os.environ.get("INFRAKIT_CORS_ORIGINS", "")
        if cors_env:
            return [o.strip() for o in cors_env.split(",") if o.strip()]
        return self.cors_origins


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
