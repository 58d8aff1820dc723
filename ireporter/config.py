"""
Configuration for iReporter
===========================

Environment variables:
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./ireporter.db)
- JWT_SECRET_KEY / JWT_EXPIRE_HOURS: token signing
- UPLOAD_DIR / MAX_UPLOAD_BYTES: media uploads on disk
- REDIS_URL: enables the RQ notification queue (unset = run inline)
- ADMIN_EMAIL: receives an admin copy of every status email
- SMTP_HOST / SMTP_PORT / SMTP_USER / SMTP_PASSWORD / SMTP_FROM / SMTP_USE_TLS
- CORS_ALLOW_ORIGINS: comma-separated list
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Database
    database_url: str = "sqlite:///./ireporter.db"

    # JWT
    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # Media uploads
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 50 * 1024 * 1024

    # Notification queue (RQ)
    redis_url: Optional[str] = None
    notification_queue: str = "notifications"
    notification_retries: int = 3

    # Email
    admin_email: Optional[str] = None
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "noreply@ireporter.app"
    smtp_use_tls: bool = True

    # HTTP
    cors_allow_origins: str = "http://localhost:3001,http://127.0.0.1:3001"

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    def email_configured(self) -> bool:
        """Check if SMTP is properly configured."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
