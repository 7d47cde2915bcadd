from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

BACKENDS = ("sqlite", "postgres")


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup."""

    discord_token: Optional[str] = None
    db_backend: str = "sqlite"
    db_path: str = "potsplit.db"
    database_url: Optional[str] = None
    poll_interval_seconds: float = 3.0
    profile_cache_ttl_seconds: float = 300.0
    log_level: str = "INFO"
    log_dir: Optional[str] = None


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{key} must be greater than zero, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build `Settings` from the environment.

    With no explicit mapping, a `.env` file in the working directory is
    loaded first (existing variables win) and `os.environ` is read.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    backend = env.get("DB_BACKEND", "sqlite").strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"DB_BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}")

    database_url = env.get("DATABASE_URL") or None
    if backend == "postgres" and not database_url:
        raise ValueError("DATABASE_URL is required when DB_BACKEND=postgres")

    return Settings(
        discord_token=env.get("DISCORD_TOKEN") or None,
        db_backend=backend,
        db_path=env.get("DB_PATH") or "potsplit.db",
        database_url=database_url,
        poll_interval_seconds=_positive_float(env, "POLL_INTERVAL_SECONDS", 3.0),
        profile_cache_ttl_seconds=_positive_float(env, "PROFILE_CACHE_TTL_SECONDS", 300.0),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        log_dir=env.get("LOG_DIR") or None,
    )
