from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/observach/config.py -> <repo root>
REPO_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["development", "test", "staging", "production"] = "development"
    log_level: str = "INFO"

    database_url: str = f"sqlite:///{REPO_ROOT / 'data' / 'observach.sqlite'}"
    cors_origins: List[str] = ["http://localhost:3000"]

    jwt_secret_key: str = "dev-only-change-me-please-dev-only-change-me"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24 * 7

    admin_email: str = "admin@observach.org"
    admin_name: str = "Administrador"
    admin_password: str = "admin123"

    auth_rate_limit: str = "10/minute"

    storage_backend: Literal["local", "s3"] = "local"
    upload_dir: Path = REPO_ROOT / "backend" / "uploads"
    max_upload_bytes: int = 8 * 1024 * 1024

    s3_endpoint: Optional[str] = None
    s3_region: str = "eu-central-1"
    s3_bucket: str = "observach-photos"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts or ["http://localhost:3000"]
        return value

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, value: str, info: ValidationInfo) -> str:
        env = str(info.data.get("app_env", "development")).lower()
        if len(value) < 32:
            raise ValueError("JWT secret must be at least 32 characters long")
        if env == "production" and "dev-only-change-me" in value:
            raise ValueError("JWT secret must be overridden in production")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
