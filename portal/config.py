from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from typing import Optional

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Portal"
    app_version: str = "1.0.0"
    app_url: str = "http://localhost:8000"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./portal.db"

    # Security settings
    secret_key: str = "change-me"
    encryption_key: Optional[str] = None
    session_cookie: str = "portal_session"
    session_lifetime_minutes: int = 120
    remember_cookie: str = "portal_remember"
    remember_lifetime_days: int = 30
    https_only: bool = False
    password_timeout: int = 10800
    password_reset_expire_minutes: int = 60
    email_verification_expire_minutes: int = 60

    # Localisation settings
    default_locale: str = "en"
    fallback_locale: str = "en"
    supported_locales: dict[str, dict[str, str]] = {
        "en": {"name": "English", "native_name": "English", "regional": "en_GB"},
        "fr": {"name": "French", "native_name": "Français", "regional": "fr_FR"},
    }

    # Dashboard
    per_page: int = 15

    # Storage
    storage_path: str = "storage/public"
    storage_url: str = "/storage"

    # Mail settings
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "noreply@example.com"
    smtp_starttls: bool = False

    # Scheduler
    scheduler_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
