# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Document store (users, products, orders, reviews, receipts)
    DATABASE_URL: str = "sqlite:///./brickshop.db"
    # Row store (cart lines, session tokens)
    SESSION_DATABASE_URL: str = "sqlite:///./brickshop_sessions.db"

    # Expo push gateway
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: Optional[str] = None
    PUSH_TIMEOUT_SECONDS: float = 10.0

    # Background housekeeping
    TOKEN_SWEEP_INTERVAL_MINUTES: int = 60
    PUSH_TOKEN_STALE_DAYS: int = 30

    UPLOAD_DIR: str = "static/uploads"
    FRONTEND_URL: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
