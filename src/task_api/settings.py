from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_JWT_SECRET = "dev-secret-change-me"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables (and a .env file
    in the working directory, if present).

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET: HMAC secret used to sign access tokens
    - JWT_TTL_SECONDS: token lifetime in seconds (default: 30 days)
    - BCRYPT_ROUNDS: bcrypt cost factor for password hashes (default: 12, clamped to 4..31)
    - LOG_LEVEL: root log level (default: INFO; unknown names fall back to INFO)
    - LOG_FILE: optional path of a rotating log file
    - HOST / PORT: bind address for `python -m task_api`
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    jwt_secret: str
    jwt_ttl_seconds: int
    log_level: str
    log_file: Optional[str]
    bcrypt_rounds: int
    host: str
    port: int

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


@lru_cache(maxsize=1)
def _load_env_file() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _parse_log_level(value: str, default: str = "INFO") -> str:
    """Return the canonical level name (WARN -> WARNING), or default if unknown."""
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        return default
    name = logging.getLevelName(level)
    return name if name in _LOG_LEVELS else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    _load_env_file()

    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    log_file = os.getenv("LOG_FILE", "").strip() or None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        jwt_secret=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_ttl_seconds=_parse_int(_get_env("JWT_TTL_SECONDS", "2592000"), 2592000),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
        log_file=log_file,
        bcrypt_rounds=min(max(_parse_int(_get_env("BCRYPT_ROUNDS", "12"), 12), 4), 31),
        host=_get_env("HOST", "0.0.0.0"),
        port=_parse_int(_get_env("PORT", "5000"), 5000),
    )
