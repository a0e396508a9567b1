"""
AdPulse Configuration
Load settings from environment variables
"""
from functools import lru_cache
from typing import Optional, List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ============================================
    # Application Settings
    # ============================================
    APP_NAME: str = "AdPulse"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True  # Enable debug by default for development
    ENVIRONMENT: str = "development"  # development, staging, production

    # ============================================
    # Database Settings
    # ============================================
    POSTGRES_USER: str = "postgres"
    POSTGRES_PWD: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "adpulse"
    DATABASE_URL: Optional[str] = None

    @property
    def database_url(self) -> str:
        """Get database URL, construct from parts if not provided"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PWD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ============================================
    # Security Settings
    # ============================================
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    ALGORITHM: str = "HS256"
    CRON_SECRET: Optional[str] = None

    # ============================================
    # CORS Settings
    # ============================================
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ============================================
    # Facebook/Meta API Settings
    # ============================================
    FACEBOOK_APP_ID: Optional[str] = None
    FACEBOOK_APP_SECRET: Optional[str] = None
    FACEBOOK_API_VERSION: str = "v21.0"
    FACEBOOK_API_BASE_URL: str = "https://graph.facebook.com"
    FACEBOOK_DIALOG_BASE_URL: str = "https://www.facebook.com"
    FACEBOOK_OAUTH_REDIRECT_URI: str = "http://localhost:3000/dashboard/meta/callback"
    FACEBOOK_OAUTH_SCOPES: List[str] = ["ads_read", "business_management", "read_insights"]

    META_PAGE_LIMIT: int = 100
    META_HTTP_TIMEOUT: float = 30.0
    META_TOKEN_WARNING_DAYS: int = 7  # warn user this many days before token expiry

    @property
    def facebook_api_url(self) -> str:
        return f"{self.FACEBOOK_API_BASE_URL}/{self.FACEBOOK_API_VERSION}"

    # ============================================
    # Dashboard / Classification Settings
    # ============================================
    DEFAULT_GREEN_MAX: float = 0.5
    DEFAULT_YELLOW_MAX: float = 0.59
    STATUS_WINDOW_DAYS: int = 3  # trailing window driving the health color
    CHART_WINDOW_DAYS: int = 14
    CACHE_TTL_SECONDS: int = 60 * 60 * 24

    # ============================================
    # Scheduler Settings
    # ============================================
    SCHEDULER_ENABLED: bool = True
    DAILY_SYNC_HOUR: int = 3
    DAILY_SYNC_MINUTE: int = 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
