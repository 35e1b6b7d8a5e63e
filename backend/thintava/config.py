# backend/thintava/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/thintava.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///thintava.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Service account JSON for Firebase Cloud Messaging; unset logs instead of sending
    FCM_CREDENTIALS_FILE = os.environ.get("FCM_CREDENTIALS_FILE")

    # Change-triggered handlers run on a worker pool after commit.
    # When False they queue until TriggerRunner.run_pending() is called.
    TRIGGERS_ASYNC = _env_bool("TRIGGERS_ASYNC", True)
    TRIGGER_WORKERS = int(os.environ.get("TRIGGER_WORKERS", "4"))

    STALE_PICKUP_MINUTES = 5
    PICKUP_SWEEP_INTERVAL_SECONDS = 60

    SESSION_HISTORY_RETENTION_DAYS = 30
    SESSION_CLEANUP_BATCH_LIMIT = 500
    SESSION_CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60

    SUSPICIOUS_SWITCH_WINDOW_HOURS = 1

    WELCOME_DELAY_SECONDS = float(os.environ.get("WELCOME_DELAY_SECONDS", "2"))
