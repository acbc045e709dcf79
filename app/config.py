from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./actions.db"

    # Platform API
    PLATFORM_API_BASE_URL: str = "https://api.twitter.com/1.1"
    PLATFORM_CONSUMER_KEY: str = ""
    PLATFORM_CONSUMER_SECRET: str = ""
    PLATFORM_TIMEOUT_SECONDS: float = 15.0

    # Processing passes
    PROCESS_INTERVAL_SECONDS: float = 70
    SOURCE_SCAN_LIMIT: int = 300
    ACTIONS_PER_SOURCE: int = 100
    LOOKUP_BATCH_LIMIT: int = 100  # friendships/lookup accepts at most 100 ids
    SINGLE_FLIGHT_PASSES: bool = False
    SCHEDULER_ENABLED: bool = True

    # Internal endpoints
    INTERNAL_API_KEY: Optional[str] = None

    # CORS
    ALLOWED_ORIGINS: list = ["http://localhost:5173", "http://localhost:8080"]

    # Runtime
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
