"""
API configuration and settings management.
"""
import os

from adsync.config import SessionConfig


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("ADSYNC_DB", "./adsync.db")

    # API settings
    API_TITLE: str = "Kleinanzeigen AdSync API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Aggregated listings and listing actions across Kleinanzeigen accounts"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("ADSYNC_API_LOG", "adsync_api.log")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if not os.path.exists(cls.DB_PATH):
            raise FileNotFoundError(f"Database file not found: {cls.DB_PATH}")

    @staticmethod
    def session_config() -> SessionConfig:
        """Browser session settings, read from the environment once at startup."""
        return SessionConfig.from_env()


# Global config instance
config = Config()
