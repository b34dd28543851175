"""
Configuration module for the pastebin service.
Loads environment variables and provides config objects.
"""
import os
from typing import Dict, List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


# Symbolic expiry keys, in seconds
EXPIRY_OPTIONS: Dict[str, int] = {
    "5m": 300,
    "1h": 3600,
    "6h": 21600,
    "1d": 86400,
    "1w": 604800,
    "1m": 2592000,
}

SUPPORTED_LANGUAGES: List[str] = [
    "text",
    "json",
    "javascript",
    "typescript",
    "python",
    "java",
    "sql",
    "shell",
    "bash",
    "css",
    "html",
    "xml",
    "markdown",
    "yaml",
    "dockerfile",
    "go",
    "rust",
    "cpp",
    "c",
    "php",
    "ruby",
    "swift",
    "kotlin",
    "scala",
    "r",
    "matlab",
    "powershell",
]


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    REDIS_SOCKET_TIMEOUT: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis").lower()
    ANALYTICS_BACKEND: str = os.getenv("ANALYTICS_BACKEND", "kv").lower()
    DEBUG: bool = _env_bool("DEBUG", "True")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    TEST_MODE: bool = _env_bool("TEST_MODE", "0")
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "")

    # Content limits
    MAX_CONTENT_SIZE: int = int(os.getenv("MAX_CONTENT_SIZE", str(1024 * 1024)))
    MAX_TITLE_LENGTH: int = int(os.getenv("MAX_TITLE_LENGTH", "200"))

    # Expiry bounds (seconds)
    MIN_EXPIRY: int = int(os.getenv("MIN_EXPIRY", "300"))
    MAX_EXPIRY: int = int(os.getenv("MAX_EXPIRY", "2592000"))
    DEFAULT_EXPIRY: str = os.getenv("DEFAULT_EXPIRY", "1d")

    # Identifiers
    ID_LENGTH: int = int(os.getenv("ID_LENGTH", "12"))
    ID_MAX_ATTEMPTS: int = int(os.getenv("ID_MAX_ATTEMPTS", "10"))

    # Security
    SUSPICIOUS_PATTERNS_ENABLED: bool = _env_bool("SUSPICIOUS_PATTERNS_ENABLED", "True")
    STRICT_VALIDATION: bool = _env_bool("STRICT_VALIDATION", "False")

    # Analytics
    ANALYTICS_RETENTION_DAYS: int = int(os.getenv("ANALYTICS_RETENTION_DAYS", "30"))

    EXPIRY_OPTIONS: Dict[str, int] = EXPIRY_OPTIONS
    SUPPORTED_LANGUAGES: List[str] = SUPPORTED_LANGUAGES


settings = Settings()
