"""
Configuration management for the ISP Project Tracker
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "ISP Project Tracker"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    APP_URL: str = "http://localhost:5000"

    # Database
    DATABASE_URL: str = "sqlite:///./isp_projects.db"
    DB_POOL_SIZE: int = 20         # ignored for SQLite
    DB_MAX_OVERFLOW: int = 10

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5000"]

    # Document uploads (local file storage)
    UPLOAD_DIR: str = "uploads/projects"

    # Email (SMTP) - notifications are skipped unless host/port/user/password are all set
    EMAIL_HOST: str = ""
    EMAIL_PORT: int = 0
    EMAIL_SECURE: bool = False     # True: implicit SSL, False: STARTTLS
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "isp-projects@example.com"
    EMAIL_TIMEOUT_SECONDS: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
