"""
Process configuration loaded from the environment (and an optional `.env`).

Settings are read once at startup and cached; `get_settings()` is the only
entry point. Invalid or missing values surface as `ConfigurationInvalid`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DATABASE_SCHEMES = {"postgres", "postgresql"}


class ConfigurationInvalid(RuntimeError):
    pass


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq's sslmode in the DSN query string.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    port: int = Field(..., alias="PORT", ge=1, le=65535)
    database_url: str = Field(..., alias="DATABASE_URL")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    db_pool_min_size: int = Field(default=0, alias="DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = Field(default=5, alias="DB_POOL_MAX_SIZE", ge=1)
    db_command_timeout: float = Field(default=30.0, alias="DB_COMMAND_TIMEOUT", gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("database_url")
    @classmethod
    def _check_database_url(cls, value: str) -> str:
        url = (value or "").strip()
        if not url:
            raise ValueError("must not be empty")

        parts = urlsplit(url)
        if parts.scheme not in _DATABASE_SCHEMES:
            raise ValueError(f"scheme must be one of {sorted(_DATABASE_SCHEMES)}, got {parts.scheme!r}")
        # Unix-socket form: postgresql:///db?host=/var/run/postgresql
        query_host = dict(parse_qsl(parts.query)).get("host", "").strip()
        if not parts.hostname and not query_host:
            raise ValueError("must include a host")
        try:
            parts.port
        except ValueError as exc:
            raise ValueError("has an invalid port") from exc
        return _sanitize_database_url(url)

    @model_validator(mode="after")
    def _check_pool_sizes(self) -> Settings:
        if self.db_pool_min_size > self.db_pool_max_size:
            raise ValueError(
                f"DB_POOL_MIN_SIZE ({self.db_pool_min_size}) must not exceed "
                f"DB_POOL_MAX_SIZE ({self.db_pool_max_size})"
            )
        return self


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        problems.append(f"{name}: {error.get('msg')}")
    return "Invalid configuration: " + "; ".join(problems)


def load_settings(**overrides: object) -> Settings:
    """
    Build a fresh `Settings` from the environment.

    Keyword overrides take precedence over the environment (by alias name,
    e.g. `PORT=8080`).
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationInvalid(_describe(exc)) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
