from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Quillpost API"
    VERSION: str = "1.0.0"

    DATABASE_URL: str = "sqlite:///./quillpost.db"

    # override through the environment in production
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10

    UPLOAD_DIR: str = "uploads"
    THUMBNAIL_MAX_BYTES: int = 2_000_000
    AVATAR_MAX_BYTES: int = 500_000

    PASSWORD_MIN_LENGTH: int = 6
    DESCRIPTION_MIN_LENGTH: int = 12

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
