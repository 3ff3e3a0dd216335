# src/taskdock/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, passed explicitly to whoever needs it.
- No secrets required at import time.
- Env names used by the web client (NEXT_PUBLIC_STORAGE_TYPE, [NEXT_PUBLIC_]SUPABASE_URL,
  [NEXT_PUBLIC_]SUPABASE_ANON_KEY, SYNC_INTERVAL_MS) are accepted as fallbacks.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "TASKDOCK"

STORAGE_LOCAL = "local"
STORAGE_REMOTE = "remote"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path

    # ---- Remote store ----
    storage_type: str
    remote_url: str
    remote_api_key: Optional[str]
    remote_timeout_seconds: float
    unwired_collections: List[str]

    # ---- Sync worker ----
    sync_interval_seconds: float
    sync_batch_size: int
    connectivity_check: bool

    @property
    def remote_sync_enabled(self) -> bool:
        return self.storage_type == STORAGE_REMOTE

    @staticmethod
    def from_env(*, load_dotenv: bool = True) -> "Settings":
        if load_dotenv:
            _load_dotenv_if_available()

        app_name = _env(_k("APP_NAME"), "taskdock") or "taskdock"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdock"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")

        storage_type = (_first_env(_k("STORAGE_TYPE"), "NEXT_PUBLIC_STORAGE_TYPE", default=STORAGE_LOCAL) or "").strip().lower()
        if storage_type not in (STORAGE_LOCAL, STORAGE_REMOTE):
            storage_type = STORAGE_LOCAL

        remote_url = (_first_env(_k("REMOTE_URL"), "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", default="") or "").strip()
        remote_api_key = _first_env(_k("REMOTE_API_KEY"), "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY", default=None)
        remote_timeout_seconds = _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 15.0)
        unwired_collections = _env_list(_k("UNWIRED_COLLECTIONS"), [])

        # Legacy SYNC_INTERVAL_MS is in milliseconds.
        legacy_interval = _env_int("SYNC_INTERVAL_MS", 5000) / 1000.0
        sync_interval_seconds = _env_float(_k("SYNC_INTERVAL_SECONDS"), legacy_interval)
        sync_batch_size = _env_int(_k("SYNC_BATCH_SIZE"), 10)
        connectivity_check = _env_bool(_k("CONNECTIVITY_CHECK"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_db_path=store_db_path,
            storage_type=storage_type,
            remote_url=remote_url,
            remote_api_key=remote_api_key,
            remote_timeout_seconds=max(1.0, remote_timeout_seconds),
            unwired_collections=unwired_collections,
            sync_interval_seconds=max(0.5, sync_interval_seconds),
            sync_batch_size=max(1, sync_batch_size),
            connectivity_check=connectivity_check,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
