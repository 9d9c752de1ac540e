"""Application configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Type

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    PROJECT_ROOT = PROJECT_ROOT
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")
    WTF_CSRF_ENABLED = True
    SESSION_COOKIE_HTTPONLY = True
    PREFERRED_URL_SCHEME = "https"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Directus backend
    DIRECTUS_URL = (os.getenv("DIRECTUS_URL") or "").rstrip("/")
    DIRECTUS_SERVICE_TOKEN = os.getenv("DIRECTUS_SERVICE_TOKEN", "")
    DIRECTUS_ADMIN_TOKEN = os.getenv("DIRECTUS_ADMIN_TOKEN", "")
    DIRECTUS_TIMEOUT = float(os.getenv("DIRECTUS_TIMEOUT", "30"))
    DIRECTUS_RETRIES = int(os.getenv("DIRECTUS_RETRIES", "3"))
    DIRECTUS_RETRY_BACKOFF = float(os.getenv("DIRECTUS_RETRY_BACKOFF", "1.0"))

    # Auth cookies
    ACCESS_COOKIE_NAME = "da_access_token"
    REFRESH_COOKIE_NAME = "da_refresh_token"
    DEFAULT_ACCESS_MAX_AGE = 60 * 60
    REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
    AUTH_COOKIE_SECURE = False

    # Booking rules
    DURATION_UNIT = os.getenv("BOOKING_DURATION_UNIT", "minutes")  # "minutes" or "hours"
    DEFAULT_DURATION_MINUTES = int(os.getenv("BOOKING_DEFAULT_DURATION_MINUTES", "60"))
    DEFAULT_BOOKING_STATUS = os.getenv("BOOKING_DEFAULT_STATUS", "new")
    MANAGER_ROLE_KEYWORDS = ("admin", "director", "owner", "директор", "управля")

    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS", True)
    ENABLE_DEBUG_ROUTE = False


class DevelopmentConfig(BaseConfig):
    """Configuration tweaks for local development."""

    DEBUG = True
    TESTING = False
    ENABLE_DEBUG_ROUTE = _env_flag("ENABLE_DEBUG_ROUTE", True)


class TestingConfig(BaseConfig):
    """Configuration for pytest; Directus is faked by the test suite."""

    DEBUG = False
    TESTING = True
    WTF_CSRF_ENABLED = False
    DIRECTUS_URL = "http://directus.test"
    DIRECTUS_SERVICE_TOKEN = "service-token"
    DIRECTUS_ADMIN_TOKEN = "admin-token"
    DIRECTUS_RETRIES = 0
    ENABLE_DEBUG_ROUTE = True
    DURATION_UNIT = "minutes"
    DEFAULT_DURATION_MINUTES = 60
    DEFAULT_BOOKING_STATUS = "new"
    EXPOSE_ERROR_DETAILS = True


class ProductionConfig(BaseConfig):
    """Production hardened configuration."""

    DEBUG = False
    TESTING = False
    AUTH_COOKIE_SECURE = True
    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS", False)
    ENABLE_DEBUG_ROUTE = _env_flag("ENABLE_DEBUG_ROUTE", False)


def get_config() -> Type[BaseConfig]:
    """Return the configuration class based on FLASK_ENV."""

    env = os.getenv("FLASK_ENV", "development").lower()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
