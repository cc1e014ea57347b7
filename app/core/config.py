from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    CORS_ORIGINS: List[str] = ["*"]
    USER_AGENT: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/110.0.0.0 Safari/537.36"
    PORT: int = 10000
    LOG_LEVEL: str = "INFO"

    # Scanner tuning
    PAGE_FETCH_TIMEOUT: float = 15.0
    LINK_CHECK_TIMEOUT: float = 10.0
    LINK_CHECK_CONCURRENCY: int = 8
    MAX_PAGE_BYTES: int = 5 * 1024 * 1024
    BLOCK_PRIVATE_HOSTS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = 'utf-8'

# Load settings from environment
settings = Settings()
