"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API starts with no configuration at all; in a production deployment
override at least ``SECRET_KEY`` and ``DATABASE_URL``.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Geo Events API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = _env_bool("DEBUG", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Path or connection string for the SQLite database.  A relative
    # path is resolved against the package root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "geo_events.db")

    # Radius in meters used by proximity searches (``near`` filter).
    search_radius_meters: float = float(os.getenv("SEARCH_RADIUS_METERS", "50000"))

    # When enabled, actors with the ``admin`` role may update and
    # delete events they do not own.
    admin_can_manage_all_events: bool = _env_bool("ADMIN_CAN_MANAGE_ALL_EVENTS", "true")

    # Event notifications.  With no webhook configured, notifications
    # are only written to the log.
    notification_webhook_url: str = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
    notification_timeout_seconds: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "5"))

    default_locale: str = os.getenv("DEFAULT_LOCALE", "en")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must therefore be set before importing this module.
settings = Settings()
