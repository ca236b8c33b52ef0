from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parent.parent


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


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "GDGoC Certificate API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_CREATE_TABLES: bool = True

    # ==========================================
    # Identity proxy (authentik) headers
    # ==========================================
    AUTH_HEADER_UID: str = "X-authentik-uid"
    AUTH_HEADER_NAME: str = "X-authentik-name"
    AUTH_HEADER_EMAIL: str = "X-authentik-email"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = (
        "https://sudo.certs-admin.certs.gdg-oncampus.dev,"
        "https://certs.gdg-oncampus.dev,"
        "http://localhost:5173,"
        "http://localhost:3000"
    )

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    MAX_REQUEST_BODY_BYTES: int = 10 * 1024 * 1024  # 10MB

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_AUTH: str = "10/minute"
    RATE_LIMIT_API: str = "100/15 minutes"
    RATE_LIMIT_CERTIFICATES: str = "50/hour"
    RATE_LIMIT_VALIDATION: str = "30/minute"

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_START_TLS: bool = True
    EMAIL_FROM: str = "noreply@gdg-oncampus.dev"
    EMAIL_FROM_NAME: str = "GDGoC Certificates"
    EMAIL_SEND_TIMEOUT_SECONDS: float = 10.0
    EMAIL_BULK_CONCURRENCY: int = 10
    PUBLIC_HOSTNAME: str = "certs.gdg-oncampus.dev"

    # ==========================================
    # Certificates
    # ==========================================
    CERTIFICATE_ID_PREFIX: str = "GDGOC"
    CERTIFICATE_ID_MAX_ATTEMPTS: int = 3
    CERTIFICATE_PAGE_DEFAULT: int = 50
    CERTIFICATE_PAGE_MAX: int = 100

    # ==========================================
    # Email templates
    # ==========================================
    BUILTIN_TEMPLATES_DIR: str = str(PACKAGE_DIR / "templates" / "emails")

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""
    SLOW_REQUEST_MS: int = 1000

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


settings = Settings()
