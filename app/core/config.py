"""
Application configuration settings with validation.
Loads from environment variables with type checking.
"""

from pydantic import validator
from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    # Application Metadata
    PROJECT_TITLE: str = "Certificate Admin Portal API"
    PROJECT_DESCRIPTION: str = "Backend API for issuing, verifying and syncing event certificates"
    PROJECT_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # or 'testing', 'production'

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./certificates.db"
    DATABASE_ECHO: bool = False

    # Authentication
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # SheetDB (spreadsheet-backed row store)
    SHEETDB_API_URL: str = "https://sheetdb.io/api/v1/changeme"
    SHEETDB_RATE_LIMIT_DELAY: float = 1.0  # seconds between outbound calls
    SHEETDB_MAX_RETRIES: int = 3
    SHEETDB_BATCH_SIZE: int = 5
    SHEETDB_BATCH_PAUSE: float = 0.5
    SHEETDB_TIMEOUT: float = 30.0

    # Certificates
    CERTIFICATE_PORTAL_URL: str = "https://igacmun.vercel.app/certificate-portal"
    DEFAULT_EVENT_NAME: str = "igacmun-session-3-2025"

    # Discord webhooks (empty disables notifications)
    DISCORD_ERRORS_WEBHOOK_URL: Optional[str] = None
    DISCORD_UPDATES_WEBHOOK_URL: Optional[str] = None
    DISCORD_USERNAME: str = "IGACMUN Certificate Bot"

    # In-process cache / batch queue
    CACHE_DEFAULT_TTL: float = 30.0
    BATCH_FLUSH_DELAY: float = 3.0

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",")]
        return v

    @validator("SHEETDB_RATE_LIMIT_DELAY", "SHEETDB_BATCH_PAUSE", "BATCH_FLUSH_DELAY")
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("Delays cannot be negative")
        return v

    @validator("SHEETDB_BATCH_SIZE", "SHEETDB_MAX_RETRIES")
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """DATABASE_URL rewritten for the asyncpg driver when it is a plain postgres URL"""
        url = str(self.DATABASE_URL)
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


settings = Settings()
