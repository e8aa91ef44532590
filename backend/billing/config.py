# backend/billing/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/billing.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///billing.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create tables and the universal item when the app starts
    BOOTSTRAP_ON_STARTUP = _env_bool("BOOTSTRAP_ON_STARTUP", True)

    # Phone numbers without a leading "+" get this prefix
    DEFAULT_COUNTRY_CODE = os.environ.get("DEFAULT_COUNTRY_CODE", "+91")

    # Stock is tracked in bags; line quantities arrive in kg
    KG_PER_BAG = int(os.environ.get("KG_PER_BAG", "30"))
    UNIVERSAL_ITEM_NAME = os.environ.get("UNIVERSAL_ITEM_NAME", "Bardana")

    # WhatsApp delivery (WASender)
    WASENDER_API_KEY = os.environ.get("WASENDER_API_KEY")
    WASENDER_API_BASE_URL = os.environ.get("WASENDER_API_BASE_URL")
    NOTIFICATION_TIMEOUT_SECONDS = float(os.environ.get("NOTIFICATION_TIMEOUT_SECONDS", "30"))
    # Optional httpx transport override (tests use httpx.MockTransport)
    NOTIFICATION_TRANSPORT = None

    # PDF uploads
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR")
