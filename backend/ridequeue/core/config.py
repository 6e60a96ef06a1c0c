import os
from typing import List, Optional
from pydantic import BaseModel

class Settings(BaseModel):
    DATABASE_URL: str
    CORS_ORIGINS: List[str]
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/app.log"
    REDIS_URL: Optional[str] = None
    NOTIFICATION_WEBHOOK_URL: Optional[str] = None
    MINUTES_PER_RIDE: int = 5
    RECENT_COMPLETED_HOURS: int = 24
    LOCK_TIMEOUT_SECONDS: float = 10.0

    @classmethod
    def load_from_env(cls):
        database_url = os.getenv("DATABASE_URL")
        environment = os.getenv("ENVIRONMENT", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        log_file_path = os.getenv("LOG_FILE_PATH", "logs/app.log")

        cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

        # Validate required fields
        if not database_url:
            raise ValueError("Missing required environment variables: DATABASE_URL")

        return cls(
            DATABASE_URL=database_url,
            CORS_ORIGINS=cors_origins,
            ENVIRONMENT=environment,
            LOG_LEVEL=log_level,
            LOG_FILE_PATH=log_file_path,
            REDIS_URL=os.getenv("REDIS_URL") or None,
            NOTIFICATION_WEBHOOK_URL=os.getenv("NOTIFICATION_WEBHOOK_URL") or None,
            MINUTES_PER_RIDE=int(os.getenv("MINUTES_PER_RIDE", "5")),
            RECENT_COMPLETED_HOURS=int(os.getenv("RECENT_COMPLETED_HOURS", "24")),
            LOCK_TIMEOUT_SECONDS=float(os.getenv("LOCK_TIMEOUT_SECONDS", "10")),
        )

# Load settings immediately. This ensures fail-fast behavior at startup/import time.
_is_test_mode = os.getenv("TEST_MODE", "").lower() == "true" or os.getenv("PYTEST_CURRENT_TEST") is not None

try:
    settings = Settings.load_from_env()
except ValueError as e:
    if _is_test_mode:
        settings = Settings(
            DATABASE_URL=os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"),
            CORS_ORIGINS=["http://localhost:3000"],
            ENVIRONMENT="test"
        )
    else:
        # Production/Development: fail fast with clear error
        print(f"CRITICAL: Configuration Error: {e}")
        print("Please set the required environment variable: DATABASE_URL")
        raise e
