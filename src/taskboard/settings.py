from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/taskboard.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - SESSION_TTL_HOURS: lifetime of an issued credential in hours (default 168); 0 disables expiry
    - PASSWORD_HASH_ITERATIONS: PBKDF2 iteration count for password hashing (default 260000)
    - LOG_LEVEL: logging level name (default INFO)
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/taskboard.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    session_ttl_hours: int = 168
    password_hash_iterations: int = 260_000
    log_level: str = "INFO"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


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
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/taskboard.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        session_ttl_hours=_parse_int(_get_env("SESSION_TTL_HOURS", "168"), 168),
        password_hash_iterations=_parse_int(
            _get_env("PASSWORD_HASH_ITERATIONS", "260000"), 260_000, minimum=1
        ),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
