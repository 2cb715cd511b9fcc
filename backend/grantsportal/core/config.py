from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator
from typing import List, Any
import json
import re


DEFAULT_JWT_SECRET = "change-me-in-production"


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_duration_minutes(v: Any) -> int:
    """
    Parse a token lifetime into minutes.

    Accepts plain minutes (60) or a number with a unit suffix:
    "30m", "1h", "7d".
    """
    if isinstance(v, int):
        return v
    text = str(v).strip().lower()
    if text.isdigit():
        return int(text)
    match = re.fullmatch(r"(\d+)\s*([smhd])", text)
    if not match:
        raise ValueError(f"Invalid duration: {v!r}")
    amount, unit = int(match.group(1)), match.group(2)
    if unit == "s":
        return max(1, amount // 60)
    if unit == "m":
        return amount
    if unit == "h":
        return amount * 60
    return amount * 60 * 24


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Research Grants Portal"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    PORT: int = 5000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./grants_portal.db",
        validation_alias=AliasChoices("DATABASE_URL", "MONGODB_URI"),
    )
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE: int = 60  # minutes, "1h" style values are accepted
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12  # 4 for tests (fast), 12 for prod (secure)

    @field_validator("JWT_EXPIRE", mode="before")
    @classmethod
    def _parse_jwt_expire(cls, v: Any) -> int:
        return parse_duration_minutes(v)

    # ==========================================
    # Frontend / CORS
    # ==========================================
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Frontend URL plus any extra comma-separated origins"""
        origins = parse_cors_origins(self.CORS_ORIGINS_STR)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.insert(0, self.FRONTEND_URL)
        return origins

    # ==========================================
    # Uploads
    # ==========================================
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB per file
    MAX_FILES_PER_UPLOAD: int = 5
    MAX_REQUEST_SIZE: int = 25 * 1024 * 1024

    # ==========================================
    # Rate limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 100
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # Email (settings test-email)
    # ==========================================
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TIMEOUT: int = 10
    EMAIL_FROM: str = "noreply@grants-portal.local"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
