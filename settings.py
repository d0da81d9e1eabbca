from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation"""
    READING_LOG_API_URL: str = ""
    GEMINI_API_KEY: Optional[str] = None
    GOOGLE_BOOKS_API_KEY: Optional[str] = None
    REQUEST_TIMEOUT: int = 15
    MAX_RETRIES: int = 3
    IMPORT_WORKERS: int = 8
    PLACEHOLDER_COVER_URL: str = "https://picsum.photos/seed/{seed}/400/600"
    COVER_MODEL: str = "imagen-4.0-generate-001"
    EXPORT_FILENAME: str = "ReadingLog_Export.xlsx"

    model_config = SettingsConfigDict(env_file='.env', case_sensitive=True, extra='ignore')


@lru_cache()
def get_settings() -> Settings:
    """Cache settings to avoid reloading .env file"""
    return Settings()
