"""Dandi configuration management.

Configuration sources (in priority order):
1. Config file (config.yaml), passed as init values
2. Environment variables (DANDI_ prefix, ``__`` for nested sections)
3. Defaults

Nested sections are merged field by field, so an environment variable still
applies to any field the config file leaves unset.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class DatabaseConfig(BaseModel):
    """Database configuration."""

    # SQLite by default; postgresql+asyncpg:// works with the postgres extra
    url: str = "sqlite+aiosqlite:///./dandi.db"
    echo: bool = False


class StoreConfig(BaseModel):
    """Key store backend selection.

    - sql: rows persisted through the database engine (default)
    - memory: process-local store, lost on restart (development/testing)
    """

    type: Literal["sql", "memory"] = "sql"


class RateLimitConfig(BaseModel):
    """Per-key metering configuration."""

    # Ceiling applied when a key is created without an explicit rateLimit
    default_limit: int = Field(default=1000, ge=1)

    # Upper bound accepted for a requested rateLimit
    max_limit: int = Field(default=1_000_000, ge=1)


class SecurityConfig(BaseModel):
    """Session identity configuration.

    Sessions are issued by an external identity provider as signed JWTs
    carrying an ``email`` claim. Dandi only verifies them.
    """

    # Shared secret used to verify session tokens. None disables token auth.
    session_secret: str | None = None
    session_algorithm: str = "HS256"

    # Cookie checked when no Authorization header is present
    session_cookie: str = "dandi_session"

    # Development only: accept the caller's email from a plain header
    trust_identity_header: bool = False
    identity_header: str = "X-User-Email"


class GitHubConfig(BaseModel):
    """GitHub API access for repository metadata and README content."""

    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    token: str | None = None
    readme_branches: list[str] = Field(default_factory=lambda: ["main", "master"])


class LLMConfig(BaseModel):
    """OpenAI-compatible chat completion endpoint used for summaries."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.0

    # README content beyond this many characters is truncated before prompting
    max_readme_chars: int = 20000


class HttpConfig(BaseModel):
    """Shared outbound HTTP client (GitHub and the summarization model)."""

    max_connections: int = Field(default=100, ge=1)
    max_keepalive_connections: int = Field(default=20, ge=0)
    keepalive_expiry: float = 30.0
    connect_timeout: float = 10.0
    # Model calls can be slow
    read_timeout: float = 60.0
    user_agent: str = "dandi"


class CorsConfig(BaseModel):
    """CORS configuration for browser callers of the metered endpoint."""

    allow_origins: list[str] = Field(default_factory=lambda: ["*"])


class Settings(BaseSettings):
    """Dandi application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DANDI_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. DANDI_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/dandi/config.yaml
    """
    config_paths = [
        os.environ.get("DANDI_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/dandi/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables, for fields the file does not set
    3. Defaults
    """
    file_config = _load_config_file()
    return Settings(**file_config)
