"""
Application configuration: environment-aware settings.

All environment variables are documented here. See .env.example for a template.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.environ.get("DATABASE", str(BASE_DIR / "study_tracker.db"))
    JSON_SORT_KEYS = False

    # AI provider
    GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY", "")
    CHAT_MODEL = os.environ.get("CHAT_MODEL", "gemini-1.5-pro")
    FAST_MODEL = os.environ.get("FAST_MODEL", "gemini-2.0-flash")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (in-memory by default)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    AI_RATE_LIMIT = os.environ.get("AI_RATE_LIMIT", "30 per minute")

    # Study thresholds
    MIN_DAILY_GOAL_HOURS = 6
    MAX_DAILY_LIMIT_HOURS = 16
    STREAK_THRESHOLD_HOURS = 6
    # False keeps the run that ended yesterday while today is still short.
    STREAK_REQUIRES_TODAY = os.environ.get("STREAK_REQUIRES_TODAY", "").lower() in ("1", "true", "yes")
    DEFAULT_FOCUS_MINUTES = int(os.environ.get("DEFAULT_FOCUS_MINUTES", "25"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if not cls.GOOGLE_API_KEY:
            warnings.warn("GOOGLE_API_KEY is not set; AI features will return fallbacks.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False
    STREAK_REQUIRES_TODAY = False


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
