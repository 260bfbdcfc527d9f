"""
Configuration for eNyaya Resolve
================================

Environment variables:
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./enyaya.db)
- STORAGE_PATH: Directory for case documents (default: ./storage/case-documents)
- SIGNING_SECRET: Secret used to sign time-limited download links
- SIGNED_URL_TTL_SECONDS: Lifetime of a download link (default: 3600)
- RESEND_API_KEY: API key for transactional email (Resend)
- EMAIL_FROM: Sender address for notifications
- SMTP_HOST / SMTP_PORT / SMTP_USER / SMTP_PASSWORD: SMTP fallback
- APP_URL: Public URL of the web app (used in email links)
- BOOTSTRAP_ADMIN_EMAIL: Admin account created on startup if missing
- DISPLAY_TIMEZONE: Zone for dates printed on awards (default: Asia/Kolkata)
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Database
    database_url: str = "sqlite:///./enyaya.db"

    # Object storage
    storage_path: str = "./storage/case-documents"
    signing_secret: str = "dev-signing-secret-change-in-production"
    signed_url_ttl_seconds: int = 3600

    # Email
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "eNyaya Resolve <onboarding@resend.dev>"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_timeout: int = 10

    # Web app
    app_url: str = "http://localhost:5173"
    cors_origins: str = "http://localhost:5173,http://localhost:8080"

    # First admin account, created at startup when set
    bootstrap_admin_email: Optional[str] = None

    # Dates printed on issued documents
    display_timezone: str = "Asia/Kolkata"

    # Registration rules
    legal_aid_income_threshold: int = 500000  # INR, NALSA guideline

    # Service info
    service_name: str = "eNyaya Resolve"
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def validate_email_config(self) -> List[str]:
        """Validate email configuration, return list of warnings"""
        warnings = []
        if not self.resend_api_key and not self.smtp_host:
            warnings.append("Neither RESEND_API_KEY nor SMTP_HOST set - emails will only be logged")
        if self.smtp_host and not (self.smtp_user and self.smtp_password):
            warnings.append("SMTP_HOST set but SMTP_USER/SMTP_PASSWORD missing")
        if self.signing_secret.startswith("dev-"):
            warnings.append("SIGNING_SECRET uses the development default")
        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
