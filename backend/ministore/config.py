# backend/ministore/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local persistence: SQLite file in the instance folder by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///ministore.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Remote document mirror (empty URL disables mirroring)
    REMOTE_STORE_URL = os.environ.get("REMOTE_STORE_URL", "")
    REMOTE_STORE_TOKEN = os.environ.get("REMOTE_STORE_TOKEN") or None
    STORE_TENANT_ID = os.environ.get("STORE_TENANT_ID", "default")
    REMOTE_DEBOUNCE_SECONDS = float(os.environ.get("REMOTE_DEBOUNCE_SECONDS", "0.5"))
    REMOTE_TIMEOUT_SECONDS = float(os.environ.get("REMOTE_TIMEOUT_SECONDS", "10"))
    # First load hydrates from the remote document when one exists
    REMOTE_PREFER_ON_LOAD = _env_bool("REMOTE_PREFER_ON_LOAD", True)

    # Fall back to in-memory demo data when nothing can be loaded
    OFFLINE_DEMO_DATA = _env_bool("OFFLINE_DEMO_DATA", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
