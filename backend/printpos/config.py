# backend/printpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/printpos.sqlite3 by default
    DATABASE_URL = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///printpos.sqlite3",  # default local location
    )
    # Same database, exposed for Flask-SQLAlchemy / Flask-Migrate
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seed the default catalog and shop profile into an empty database
    SEED_DEFAULTS = _env_flag("SEED_DEFAULTS", True)

    # Shared access gate. ACCESS_PASSCODE_HASH (bcrypt) wins when both are set.
    ACCESS_PASSCODE = os.environ.get("ACCESS_PASSCODE", "1234")
    ACCESS_PASSCODE_HASH = os.environ.get("ACCESS_PASSCODE_HASH")

    # Generative-text advisory panel
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
    ADVISORY_MODEL = os.environ.get("ADVISORY_MODEL", "gemini-3-flash-preview")
    ADVISORY_API_BASE = os.environ.get(
        "ADVISORY_API_BASE",
        "https://generativelanguage.googleapis.com/v1beta",
    )
    ADVISORY_TIMEOUT_SECONDS = float(os.environ.get("ADVISORY_TIMEOUT_SECONDS", "20"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
