"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings


# Base path for uploads (parent of app/)
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "Kitabghar Digital Library"
    debug: bool = False
    log_level: str = "INFO"

    # Storage backend: "sql" (SQLAlchemy) or "memory" (process-local maps)
    store_backend: str = "sql"
    database_url: str = "sqlite:///./library.db"

    # JWT bearer tokens
    secret_key: str = "change-me-in-production-use-env"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Bootstrap administrator, created or promoted on first matching login
    bootstrap_admin_email: str = "admin@kitabghar.local"
    bootstrap_admin_password: str = "Admin@741"
    bootstrap_admin_name: str = "Admin"

    # Uploaded covers and book files
    upload_dir: Path = BASE_DIR / "uploads"
    max_upload_bytes: int = 50 * 1024 * 1024

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
