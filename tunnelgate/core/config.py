"""
Application Configuration using Pydantic Settings

Environment variables (or a .env file) override the defaults defined here.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    tunnelgate settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "tunnelgate"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Plugin server
    HOST: str = "0.0.0.0"
    PORT: int = 7200

    # Durable user store
    TOKENS_FILE: str = Field(
        default="tokens.ini",
        description="Section file holding users, allow-lists and disabled markers"
    )

    # Admin surface, Basic auth is only enforced when both are set
    ADMIN_USER: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    @property
    def admin_auth_enabled(self) -> bool:
        return bool(self.ADMIN_USER and self.ADMIN_PASSWORD)


# Global settings instance
settings = Settings()
