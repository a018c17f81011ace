from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "WhatIamToDo Calendar Sync"
    ENVIRONMENT: str = "development"  # development | test | production
    API_BASE_URL: str = "https://whatiamtodo.ru"
    API_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
