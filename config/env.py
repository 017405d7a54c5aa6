"""Environment-driven configuration via Pydantic Settings."""

from functools import lru_cache
from typing import Annotated
import json

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Deployment configuration loaded from RSLIST_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RSLIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Django
    secret_key: str = "django-insecure-rslist-development-key"
    debug: bool = False
    allowed_hosts: Annotated[list[str], NoDecode] = ["localhost", "127.0.0.1", "testserver"]

    # Database (SQLite unless told otherwise)
    db_engine: str = "django.db.backends.sqlite3"
    db_name: str = "db.sqlite3"
    db_user: str = ""
    db_password: str = ""
    db_host: str = ""
    db_port: str = ""
    # Seconds a SQLite writer waits for the database lock.
    db_timeout: int = 20

    # Logging
    log_level: str = "INFO"

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def _parse_allowed_hosts(cls, v: object) -> object:
        """Accept a JSON array or a comma-separated string."""
        if not isinstance(v, str):
            return v
        s = v.strip()
        if s.startswith("["):
            return json.loads(s)
        return [host.strip() for host in s.split(",") if host.strip()]

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()


@lru_cache
def get_env() -> EnvSettings:
    """Get cached settings instance."""
    return EnvSettings()
