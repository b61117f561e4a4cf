# ─────────────────────────────────────────────────────────────────
# config.py — Runtime Settings
#
# Every knob lives in one pydantic model, filled from environment
# variables. Unset variables fall back to the defaults below, which
# reproduce the production behaviour: check every 60 seconds and
# alert when a device has been silent for more than 5 minutes.
# ─────────────────────────────────────────────────────────────────

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """All runtime configuration for the offline notifier."""

    # Offline check
    offline_threshold_seconds: int = Field(default=300, gt=0, description="Seconds of silence before a device is stale")
    check_interval_seconds: float = Field(default=60, gt=0, description="Seconds between scheduled cycles")
    fetch_timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Give up on a registry fetch after this long")
    scheduler_enabled: bool = Field(default=True, description="Run cycles on a timer inside the API process")

    # Registry reader
    registry_backend: Literal["memory", "firebase"] = Field(default="memory", description="Where device records come from")
    registry_path: str = Field(default="devices", description="Realtime Database path holding the device records")
    registry_seed_file: Optional[str] = Field(default=None, description="JSON file loaded into the in-memory registry")

    # Notifier
    notifier_backend: Literal["log", "firebase"] = Field(default="log", description="How push messages are delivered")
    fcm_dry_run: bool = Field(default=False, description="Validate FCM messages without delivering them")

    # Firebase credentials (only read when a firebase backend is selected)
    firebase_credentials: Optional[str] = Field(default=None, description="Path to a service account JSON key")
    firebase_database_url: Optional[str] = Field(default=None, description="Realtime Database URL")

    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def uses_firebase(self) -> bool:
        return self.registry_backend == "firebase" or self.notifier_backend == "firebase"


# Environment variable → Settings field
ENV_VARS = {
    "OFFLINE_THRESHOLD_SECONDS": "offline_threshold_seconds",
    "CHECK_INTERVAL_SECONDS": "check_interval_seconds",
    "FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
    "SCHEDULER_ENABLED": "scheduler_enabled",
    "REGISTRY_BACKEND": "registry_backend",
    "REGISTRY_PATH": "registry_path",
    "REGISTRY_SEED_FILE": "registry_seed_file",
    "NOTIFIER_BACKEND": "notifier_backend",
    "FCM_DRY_RUN": "fcm_dry_run",
    "FIREBASE_CREDENTIALS": "firebase_credentials",
    "FIREBASE_DATABASE_URL": "firebase_database_url",
    "LOG_LEVEL": "log_level",
}


def load_settings(environ=None) -> Settings:
    """
    Build Settings from environment variables.

    Only variables that are set (and non-empty) override a default.
    Pydantic coerces the raw strings, so "false", "0" and "no" all
    turn SCHEDULER_ENABLED off, and a bad value like
    OFFLINE_THRESHOLD_SECONDS=abc fails loudly at startup.
    """
    if environ is None:
        environ = os.environ

    overrides = {}
    for env_name, field_name in ENV_VARS.items():
        value = environ.get(env_name)
        if value is not None and value.strip() != "":
            overrides[field_name] = value.strip()

    return Settings(**overrides)
