from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_url(name: str, fallback: str = "DF_NOTIFICATION_URL") -> str:
    """Read a callback URL, falling back to the shared notification URL when unset or empty."""
    raw = os.getenv(name, "").strip()
    if raw:
        return raw
    return os.getenv(fallback, "").strip()


@dataclass(frozen=True)
class Settings:
    # Docker
    docker_host: str = os.getenv("DF_DOCKER_HOST") or "unix:///var/run/docker.sock"
    poll_interval_s: int = _env_int("DF_INTERVAL", 5)

    # Notification targets
    notif_create_service_url: str = _env_url("DF_NOTIF_CREATE_SERVICE_URL")
    notif_remove_service_url: str = _env_url("DF_NOTIF_REMOVE_SERVICE_URL")

    # Delivery
    retries: int = _env_int("DF_RETRY", 50)
    retry_interval_s: int = _env_int("DF_RETRY_INTERVAL", 5)
    notify_timeout_s: int = _env_int("DF_NOTIFY_TIMEOUT_S", 10)

    # Event log
    db_path: str = os.getenv("SWL_DB_PATH", "swl.db")


settings = Settings()
