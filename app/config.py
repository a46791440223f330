"""
Configuration module for Pastebin Lite.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    # "redis" falls back to memory when Redis is unreachable; "memory" never tries Redis
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis").lower()
    DEBUG: bool = _flag("DEBUG", "True")
    # Empty means share URLs are built from the request's host header
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "")
    TEST_MODE: bool = _flag("TEST_MODE", "0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
