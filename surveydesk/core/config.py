"""Application configuration.

Defines `Settings` read from environment variables and `.env`. The value is
built once at process start and handed to `create_app`; components get what
they need from it instead of reading the environment themselves.
"""
# surveydesk/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Survey Desk"
    DEBUG: bool = False

    DATABASE_URL: str = "sqlite:///./surveydesk.db"
    DB_TIMEOUT: float = 15.0

    SECRET_KEY: str = "change-me-in-env"
    ADMIN_TOKEN_TTL: int = 60 * 60 * 24  # 24h

    # Telegram channels; empty values mean "not configured"
    BOT_TOKEN: str = ""
    NOTIFY_CHAT_ID: str = ""
    REPORT_CHAT_ID: str = ""
    NOTIFY_TIMEOUT: float = 10.0
    DELIVERY_TIMEOUT: float = 30.0

    LOG_PATH: str = "logging"
    LOG_FILE: str = "surveydesk.log"


@lru_cache
def get_settings() -> Settings:
    return Settings()
